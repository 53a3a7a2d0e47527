"""
Shared Secret Deriver

ECDH between a local private key and a remote raw public key. The shared
x-coordinate is cut to its first 256 bits so every curve yields a
32-byte secret.
"""

import logging
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import KeyImportError
from .curves import curve_of
from .keypairs import import_public_key

logger = logging.getLogger(__name__)

SHARED_SECRET_SIZE = 32  # 256 bits


def derive_shared_secret(local_private_key: ec.EllipticCurvePrivateKey,
                         remote_public_key_bytes: bytes,
                         curve: Optional[str] = None) -> bytes:
    """
    Derive the raw shared secret with a peer.

    Both parties obtain identical bytes when each uses its own private key
    and the other's public key.

    Args:
        local_private_key: Our ECDH private key
        remote_public_key_bytes: Peer's raw uncompressed public key
        curve: Expected curve; defaults to the local key's curve

    Returns:
        32-byte shared secret

    Raises:
        KeyImportError: If the remote key is invalid or on another curve
    """
    local_curve = curve_of(local_private_key).name
    if curve is not None and curve != local_curve:
        raise KeyImportError(
            f"Local key is on {local_curve} but {curve} was requested"
        )

    try:
        peer_public_key = import_public_key(remote_public_key_bytes, local_curve)
    except KeyImportError:
        logger.warning("Rejected remote %s public key", local_curve)
        raise

    shared = local_private_key.exchange(ec.ECDH(), peer_public_key)
    return shared[:SHARED_SECRET_SIZE]
