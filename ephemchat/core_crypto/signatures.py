"""
Message Signer/Verifier

ECDSA P-384 with SHA-384 over the UTF-8 plaintext.

Signatures use the fixed-width r || s layout (48 + 48 = 96 bytes) rather
than DER so they can be split off the end of the decrypted payload at a
known offset.
"""

from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from ..errors import KeyImportError
from .curves import SIGNATURE_CURVE, curve_of, get_curve
from .envelope import SIGNATURE_SIZE
from .keypairs import import_public_key

_COORDINATE_SIZE = get_curve(SIGNATURE_CURVE).coordinate_size

SIGNATURE_ALGORITHM = ec.ECDSA(hashes.SHA384())

PublicKeyLike = Union[ec.EllipticCurvePublicKey, bytes]


def _to_bytes(plaintext: Union[str, bytes]) -> bytes:
    if isinstance(plaintext, str):
        return plaintext.encode('utf-8')
    return bytes(plaintext)


def sign(plaintext: Union[str, bytes],
         signing_private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """
    Sign a message.

    Args:
        plaintext: Message text (encoded as UTF-8) or raw bytes
        signing_private_key: P-384 private key

    Returns:
        96-byte r || s signature
    """
    if curve_of(signing_private_key).name != SIGNATURE_CURVE:
        raise ValueError(f"Signing key must be on {SIGNATURE_CURVE}")

    der = signing_private_key.sign(_to_bytes(plaintext), SIGNATURE_ALGORITHM)
    r, s = decode_dss_signature(der)
    return r.to_bytes(_COORDINATE_SIZE, 'big') + s.to_bytes(_COORDINATE_SIZE, 'big')


def load_signing_public_key(key: PublicKeyLike) -> ec.EllipticCurvePublicKey:
    """
    Accept a public key object or its raw point bytes.

    Raises:
        KeyImportError: Malformed bytes or a key on the wrong curve
    """
    if isinstance(key, ec.EllipticCurvePublicKey):
        if curve_of(key).name != SIGNATURE_CURVE:
            raise KeyImportError(f"Signing key must be on {SIGNATURE_CURVE}")
        return key
    return import_public_key(key, SIGNATURE_CURVE)


def verify(plaintext: Union[str, bytes], signature: bytes,
           signing_public_key: PublicKeyLike) -> bool:
    """
    Verify a message signature.

    Returns False for any mismatch, including a signature of the wrong
    length. Only malformed key material raises.

    Raises:
        KeyImportError: If the public key cannot be loaded
    """
    public_key = load_signing_public_key(signing_public_key)

    if len(signature) != SIGNATURE_SIZE:
        return False

    r = int.from_bytes(signature[:_COORDINATE_SIZE], 'big')
    s = int.from_bytes(signature[_COORDINATE_SIZE:], 'big')
    try:
        public_key.verify(encode_dss_signature(r, s), _to_bytes(plaintext),
                          SIGNATURE_ALGORITHM)
        return True
    except InvalidSignature:
        return False
