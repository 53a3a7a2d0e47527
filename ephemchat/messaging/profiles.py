"""
Security profiles.

A profile fixes the key-exchange curve, symmetric cipher and PBKDF2
iteration count for a conversation. Sender and recipient must use the
same profile or decryption fails.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from ..core_crypto.ciphers import CIPHERS, PBKDF2_ITERATIONS, AES_CBC, AES_GCM
from ..core_crypto.curves import CURVES, P256, P384, P521, SIGNATURE_CURVE


MIN_KDF_ITERATIONS = 100_000


@dataclass(frozen=True)
class SecurityProfile:
    """Immutable tuple of curve, cipher and KDF iteration count."""
    name: str
    curve: str = P384
    cipher: str = AES_GCM
    kdf_iterations: int = PBKDF2_ITERATIONS

    def __post_init__(self):
        if self.curve not in CURVES:
            raise ValueError(f"Unsupported curve {self.curve!r}")
        if self.cipher not in CIPHERS:
            raise ValueError(f"Unsupported cipher {self.cipher!r}")
        if self.kdf_iterations < MIN_KDF_ITERATIONS:
            raise ValueError(
                f"KDF iterations must be at least {MIN_KDF_ITERATIONS}"
            )

    @property
    def authenticated_cipher(self) -> bool:
        return CIPHERS[self.cipher].authenticated

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SecurityProfile':
        """Build a profile from a config mapping; unknown keys are rejected."""
        unknown = set(data) - {'name', 'curve', 'cipher', 'kdf_iterations'}
        if unknown:
            raise ValueError(f"Unknown profile settings: {sorted(unknown)}")
        return cls(**data)

    def describe(self) -> Dict[str, str]:
        """Human-readable security settings summary."""
        return {
            'Key Exchange': f"ECDH {self.curve}",
            'Encryption': f"{self.cipher} (256-bit)",
            'Security Level': self.name,
            'Message Signing': f"Enabled (ECDSA {SIGNATURE_CURVE})",
            'Key Derivation': f"PBKDF2 ({self.kdf_iterations:,} iterations)",
        }


PROFILES: Dict[str, SecurityProfile] = {
    'high': SecurityProfile('high', P384, AES_GCM),
    'medium': SecurityProfile('medium', P256, AES_GCM),
    'low': SecurityProfile('low', P256, AES_CBC),
    'maximum': SecurityProfile('maximum', P521, AES_GCM),
}

DEFAULT_PROFILE = PROFILES['high']


def get_profile(name: str) -> SecurityProfile:
    """
    Look up a named profile.

    Raises:
        ValueError: If no profile has that name
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown security profile {name!r}; expected one of {sorted(PROFILES)}"
        ) from None
