"""
Envelope Codec

Wire format of one encrypted message:

    [salt (16 bytes) | iv (12 bytes) | ciphertext (variable)]

The plaintext sealed inside the ciphertext is itself

    [message text (UTF-8) | signature (96 bytes)]

No length prefixes: both fixed-width fields sit at known offsets.
"""

import base64
from dataclasses import dataclass
from typing import Tuple

from ..errors import MalformedEnvelopeError
from .curves import SIGNATURE_CURVE, get_curve


# Constants
SALT_SIZE = 16          # PBKDF2 salt
IV_SIZE = 12            # 96-bit IV
HEADER_SIZE = SALT_SIZE + IV_SIZE
SIGNATURE_SIZE = get_curve(SIGNATURE_CURVE).signature_size  # P-384 r || s, 96


@dataclass(frozen=True)
class Envelope:
    """One serialized encrypted message."""
    salt: bytes          # 16 bytes
    iv: bytes            # 12 bytes
    ciphertext: bytes    # Variable length (GCM output includes the tag)

    def __post_init__(self):
        if len(self.salt) != SALT_SIZE:
            raise MalformedEnvelopeError(f"Salt must be {SALT_SIZE} bytes")
        if len(self.iv) != IV_SIZE:
            raise MalformedEnvelopeError(f"IV must be {IV_SIZE} bytes")

    def to_bytes(self) -> bytes:
        """Serialize as salt | iv | ciphertext."""
        return self.salt + self.iv + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Envelope':
        """
        Split raw bytes into salt, iv and ciphertext.

        Raises:
            MalformedEnvelopeError: If there is no ciphertext after the header
        """
        data = bytes(data)
        if len(data) <= HEADER_SIZE:
            raise MalformedEnvelopeError(
                f"Envelope must be longer than {HEADER_SIZE} bytes, got {len(data)}"
            )
        return cls(
            salt=data[:SALT_SIZE],
            iv=data[SALT_SIZE:HEADER_SIZE],
            ciphertext=data[HEADER_SIZE:],
        )

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> 'Envelope':
        try:
            return cls.from_bytes(bytes.fromhex(hex_str))
        except ValueError as exc:
            raise MalformedEnvelopeError(f"Invalid hex envelope: {exc}") from exc

    def to_base64(self) -> str:
        """Base64 text form for JSON transports."""
        return base64.b64encode(self.to_bytes()).decode('ascii')

    @classmethod
    def from_base64(cls, text: str) -> 'Envelope':
        try:
            raw = base64.b64decode(text, validate=True)
        except ValueError as exc:
            raise MalformedEnvelopeError(f"Invalid base64 envelope: {exc}") from exc
        return cls.from_bytes(raw)

    def __len__(self) -> int:
        return HEADER_SIZE + len(self.ciphertext)


def join_signed_plaintext(message_bytes: bytes, signature: bytes) -> bytes:
    """Append the fixed-width signature to the message bytes."""
    if len(signature) != SIGNATURE_SIZE:
        raise ValueError(f"Signature must be {SIGNATURE_SIZE} bytes")
    return message_bytes + signature


def split_signed_plaintext(plaintext: bytes) -> Tuple[bytes, bytes]:
    """
    Separate message bytes from the trailing signature.

    Returns:
        Tuple of (message_bytes, signature)

    Raises:
        MalformedEnvelopeError: If the plaintext is shorter than a signature
    """
    if len(plaintext) < SIGNATURE_SIZE:
        raise MalformedEnvelopeError(
            f"Decrypted payload shorter than {SIGNATURE_SIZE}-byte signature"
        )
    split = len(plaintext) - SIGNATURE_SIZE
    return plaintext[:split], plaintext[split:]
