# ephemchat Test Suite
"""
Test suite including:
- Unit tests (core_crypto, messaging)
- Integration tests (chat clients, expiry, audit log)
- Security tests (tampering, forgery, invalid keys)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
