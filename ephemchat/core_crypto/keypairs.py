"""
Key Pair Manager

Generates the two key pairs a session owns:
- a key-exchange (ECDH) pair on a selectable curve (default P-384)
- a signing (ECDSA) pair, always P-384

Public keys are exported and imported as raw uncompressed points so they
can be published to the key directory as plain bytes.
"""

import logging
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import KeyGenerationError, KeyImportError
from .curves import (
    DEFAULT_CURVE,
    SIGNATURE_CURVE,
    UNCOMPRESSED_POINT_PREFIX,
    CurveProvider,
    get_curve,
)

logger = logging.getLogger(__name__)


@dataclass
class KeyExchangeKeyPair:
    """ECDH key pair container."""
    private_key: ec.EllipticCurvePrivateKey
    public_key: ec.EllipticCurvePublicKey
    curve: str

    def public_bytes(self) -> bytes:
        """Public key as raw uncompressed point."""
        return encode_public_key(self.public_key)


@dataclass
class SignatureKeyPair:
    """ECDSA P-384 key pair container."""
    private_key: ec.EllipticCurvePrivateKey
    public_key: ec.EllipticCurvePublicKey
    curve: str = SIGNATURE_CURVE

    def public_bytes(self) -> bytes:
        """Public key as raw uncompressed point."""
        return encode_public_key(self.public_key)


def _generate(curve_name: str) -> ec.EllipticCurvePrivateKey:
    try:
        provider = get_curve(curve_name)
    except KeyError as exc:
        raise KeyGenerationError(str(exc)) from None
    try:
        return ec.generate_private_key(provider.curve())
    except UnsupportedAlgorithm as exc:
        # Backend may be built without a given curve
        raise KeyGenerationError(
            f"Could not generate {curve_name} key: {exc}"
        ) from exc


def generate_key_exchange_key_pair(curve: str = DEFAULT_CURVE) -> KeyExchangeKeyPair:
    """
    Generate a fresh ECDH key pair.

    Args:
        curve: One of P-256, P-384, P-521

    Returns:
        New key-exchange key pair

    Raises:
        KeyGenerationError: If the curve is unsupported
    """
    private_key = _generate(curve)
    logger.debug("Generated %s key-exchange pair", curve)
    return KeyExchangeKeyPair(private_key, private_key.public_key(), curve)


def generate_signature_key_pair() -> SignatureKeyPair:
    """Generate a fresh ECDSA P-384 signing pair."""
    private_key = _generate(SIGNATURE_CURVE)
    logger.debug("Generated %s signature pair", SIGNATURE_CURVE)
    return SignatureKeyPair(private_key, private_key.public_key())


def encode_public_key(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Raw uncompressed point encoding of an EC public key."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint
    )


def export_public_key(pair) -> bytes:
    """
    Export the public half of a key pair for publication.

    Deterministic: the same pair always exports the same bytes.
    """
    return encode_public_key(pair.public_key)


def import_public_key(data: bytes, curve: str) -> ec.EllipticCurvePublicKey:
    """
    Import a raw uncompressed public point, validating it fully.

    Args:
        data: Raw point bytes (0x04 | X | Y)
        curve: Curve the point must lie on

    Returns:
        Public key object

    Raises:
        KeyImportError: Wrong length, wrong prefix, not on the curve
    """
    try:
        provider: CurveProvider = get_curve(curve)
    except KeyError as exc:
        raise KeyImportError(str(exc)) from None

    if not isinstance(data, (bytes, bytearray)):
        raise KeyImportError(f"Public key must be bytes, got {type(data).__name__}")
    data = bytes(data)

    if len(data) != provider.public_key_size:
        raise KeyImportError(
            f"{curve} public key must be {provider.public_key_size} bytes, "
            f"got {len(data)}"
        )
    if data[0] != UNCOMPRESSED_POINT_PREFIX:
        raise KeyImportError("Public key is not an uncompressed point")

    try:
        # Rejects points that are off the curve (including the identity)
        return ec.EllipticCurvePublicKey.from_encoded_point(provider.curve(), data)
    except ValueError as exc:
        raise KeyImportError(f"Invalid {curve} public key: {exc}") from exc
