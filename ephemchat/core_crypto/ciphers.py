"""
Symmetric Cipher Engine

Per-message encryption under a key derived from the ECDH shared secret:
- PBKDF2-HMAC-SHA256 (100,000 iterations) with a fresh 16-byte salt
- Fresh 12-byte IV per message
- AES-256-GCM (default) or AES-256-CBC with PKCS#7 padding

AES-CBC has no cipher-level authentication. When it is selected the
message signature is the only integrity check.

CRITICAL: salt and IV are drawn fresh for every call. Never reuse an
IV with the same key.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from typing import Dict, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import DecryptionError
from .envelope import IV_SIZE, SALT_SIZE, Envelope

logger = logging.getLogger(__name__)


# Constants
KEY_SIZE = 32                # 256-bit AES key
TAG_SIZE = 16                # 128-bit GCM tag
BLOCK_SIZE = 16              # AES block
CBC_IV_SUFFIX = bytes(BLOCK_SIZE - IV_SIZE)

# PBKDF2 configuration; changing the iteration count breaks the protocol
PBKDF2_ITERATIONS = 100_000
PBKDF2_ALGORITHM = hashes.SHA256()

AES_GCM = "AES-GCM"
AES_CBC = "AES-CBC"
DEFAULT_CIPHER = AES_GCM


class CipherProvider(ABC):
    """One symmetric cipher a security profile may select."""

    name: str = ""
    authenticated: bool = False

    @abstractmethod
    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        """Encrypt under a 256-bit key and 12-byte IV."""

    @abstractmethod
    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt, raising DecryptionError on any failure.

        Never returns partially decrypted data.
        """


class AESGCMProvider(CipherProvider):
    """AES-256-GCM; the 16-byte tag is appended to the ciphertext."""

    name = AES_GCM
    authenticated = True

    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        return AESGCM(key).encrypt(iv, plaintext, None)

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        if len(ciphertext) < TAG_SIZE:
            raise DecryptionError("Ciphertext shorter than GCM tag")
        try:
            return AESGCM(key).decrypt(iv, ciphertext, None)
        except InvalidTag as exc:
            raise DecryptionError("Authentication tag mismatch") from exc


class AESCBCProvider(CipherProvider):
    """
    AES-256-CBC with PKCS#7 padding.

    CBC needs a full 16-byte block IV; the 12-byte wire IV is extended
    with four zero bytes so the envelope layout stays the same.
    """

    name = AES_CBC
    authenticated = False

    @staticmethod
    def _block_iv(iv: bytes) -> bytes:
        return iv + CBC_IV_SUFFIX

    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        padder = sym_padding.PKCS7(BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(self._block_iv(iv))).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise DecryptionError("CBC ciphertext is not a whole number of blocks")

        decryptor = Cipher(algorithms.AES(key), modes.CBC(self._block_iv(iv))).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = sym_padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionError("Invalid padding") from exc


CIPHERS: Dict[str, CipherProvider] = {
    AES_GCM: AESGCMProvider(),
    AES_CBC: AESCBCProvider(),
}


def get_cipher(name: str) -> CipherProvider:
    """
    Look up a cipher provider by name.

    Raises:
        KeyError: If the cipher is not supported
    """
    try:
        return CIPHERS[name]
    except KeyError:
        raise KeyError(
            f"Unsupported cipher {name!r}; expected one of {sorted(CIPHERS)}"
        ) from None


def derive_message_key(shared_secret: bytes, salt: bytes,
                       iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """
    Derive a per-message AES key from the shared secret using PBKDF2.

    Args:
        shared_secret: Raw ECDH secret
        salt: Fresh 16-byte salt from the envelope
        iterations: PBKDF2 iteration count

    Returns:
        32-byte derived key
    """
    kdf = PBKDF2HMAC(
        algorithm=PBKDF2_ALGORITHM,
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(shared_secret)


def generate_salt() -> bytes:
    return secrets.token_bytes(SALT_SIZE)


def generate_iv() -> bytes:
    return secrets.token_bytes(IV_SIZE)


class SymmetricCipherEngine:
    """
    Encrypts payloads into envelopes and back.

    Example:
        engine = SymmetricCipherEngine("AES-GCM")
        envelope = engine.encrypt(b"payload", shared_secret)
        payload = engine.decrypt(envelope.to_bytes(), shared_secret)
    """

    def __init__(self, cipher: str = DEFAULT_CIPHER,
                 iterations: int = PBKDF2_ITERATIONS):
        self._provider = get_cipher(cipher)
        self._iterations = iterations

    @property
    def cipher_name(self) -> str:
        return self._provider.name

    @property
    def authenticated(self) -> bool:
        """True if the cipher itself detects tampering."""
        return self._provider.authenticated

    def encrypt(self, plain_bytes: bytes, shared_secret: bytes) -> Envelope:
        """
        Encrypt under a fresh salt and IV.

        Returns:
            Envelope (salt | iv | ciphertext)
        """
        salt = generate_salt()
        iv = generate_iv()
        key = derive_message_key(shared_secret, salt, self._iterations)
        ciphertext = self._provider.encrypt(key, iv, plain_bytes)
        return Envelope(salt=salt, iv=iv, ciphertext=ciphertext)

    def decrypt(self, envelope: Union[bytes, Envelope], shared_secret: bytes) -> bytes:
        """
        Decrypt an envelope.

        Raises:
            DecryptionError: Malformed envelope, tag mismatch or wrong key
        """
        if not isinstance(envelope, Envelope):
            envelope = Envelope.from_bytes(envelope)

        key = derive_message_key(shared_secret, envelope.salt, self._iterations)
        return self._provider.decrypt(key, envelope.iv, envelope.ciphertext)


def encrypt(plain_bytes: bytes, shared_secret: bytes,
            cipher: str = DEFAULT_CIPHER,
            iterations: int = PBKDF2_ITERATIONS) -> Envelope:
    """One-shot encryption into an envelope."""
    return SymmetricCipherEngine(cipher, iterations).encrypt(plain_bytes, shared_secret)


def decrypt(envelope: Union[bytes, Envelope], shared_secret: bytes,
            cipher: str = DEFAULT_CIPHER,
            iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """One-shot decryption of an envelope."""
    return SymmetricCipherEngine(cipher, iterations).decrypt(envelope, shared_secret)
