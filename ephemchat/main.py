"""
ephemchat - Main Entry Point
Lists the available security profiles.
"""

from .messaging.profiles import PROFILES, DEFAULT_PROFILE


def main():
    """Main entry point for ephemchat."""
    print("=" * 50)
    print("Welcome to ephemchat")
    print("=" * 50)
    print("\nSecurity profiles:")
    for name, profile in PROFILES.items():
        marker = " (default)" if profile is DEFAULT_PROFILE else ""
        print(f"\n  {name}{marker}")
        for label, value in profile.describe().items():
            print(f"    {label}: {value}")
    print("\n")

if __name__ == "__main__":
    main()
