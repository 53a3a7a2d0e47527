"""
Message Pipeline

Orchestrates key agreement, signing, symmetric encryption and the envelope
codec into the two operations collaborators use:

    encrypt_outgoing:  derive secret -> sign text -> text || sig -> encrypt
    decrypt_incoming:  derive secret -> decrypt -> split sig -> verify

Outgoing failures propagate; nothing partial is ever returned.
Incoming failures never propagate: an envelope that cannot be decrypted
becomes an "undecryptable" placeholder. With AES-GCM a bad signature
leaves the content visible but marked verified=False; with AES-CBC the
signature is the only integrity check, so an unverified message is
undecryptable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Iterable, List, Optional, Tuple, Union

from cryptography.hazmat.primitives.asymmetric import ec

from ..core_crypto.ciphers import SymmetricCipherEngine
from ..core_crypto.ecdh import derive_shared_secret
from ..core_crypto.envelope import Envelope, join_signed_plaintext, split_signed_plaintext
from ..core_crypto.keypairs import SignatureKeyPair
from ..core_crypto.signatures import PublicKeyLike, sign, verify
from ..errors import DecryptionError, KeyImportError
from .profiles import DEFAULT_PROFILE, SecurityProfile

logger = logging.getLogger(__name__)

UNDECRYPTABLE_CONTENT = "[Encrypted Message - Unable to decrypt]"


@dataclass(frozen=True)
class DecryptedMessage:
    """Result of decrypting one incoming envelope."""
    content: str
    verified: bool
    decrypted: bool = True
    error: Optional[str] = None

    @classmethod
    def undecryptable(cls, reason: str) -> 'DecryptedMessage':
        return cls(
            content=UNDECRYPTABLE_CONTENT,
            verified=False,
            decrypted=False,
            error=reason,
        )

    @property
    def is_trusted(self) -> bool:
        """Decrypted and carrying a valid signature."""
        return self.decrypted and self.verified


def encrypt_outgoing(text: str,
                     local_private_key: ec.EllipticCurvePrivateKey,
                     recipient_public_key_bytes: bytes,
                     signing_key_pair: SignatureKeyPair,
                     profile: SecurityProfile = DEFAULT_PROFILE,
                     shared_secret: Optional[bytes] = None) -> Envelope:
    """
    Sign and encrypt a message for one recipient.

    Args:
        text: Message text
        local_private_key: Our ECDH private key
        recipient_public_key_bytes: Recipient's raw ECDH public key
        signing_key_pair: Our P-384 signing pair
        profile: Security profile shared with the recipient
        shared_secret: Previously derived secret for this pair, if cached

    Returns:
        Envelope ready for the transport

    Raises:
        KeyImportError: Recipient key is malformed or on another curve
    """
    if shared_secret is None:
        shared_secret = derive_shared_secret(
            local_private_key, recipient_public_key_bytes, profile.curve
        )

    message_bytes = text.encode('utf-8')
    signature = sign(message_bytes, signing_key_pair.private_key)
    payload = join_signed_plaintext(message_bytes, signature)

    engine = SymmetricCipherEngine(profile.cipher, profile.kdf_iterations)
    return engine.encrypt(payload, shared_secret)


def decrypt_incoming(envelope: Union[bytes, Envelope],
                     local_private_key: ec.EllipticCurvePrivateKey,
                     sender_public_key_bytes: bytes,
                     sender_signing_public_key: Optional[PublicKeyLike],
                     profile: SecurityProfile = DEFAULT_PROFILE,
                     shared_secret: Optional[bytes] = None) -> DecryptedMessage:
    """
    Decrypt and verify one incoming envelope.

    Never raises for bad input. Under AES-GCM a missing or malformed
    signing key only costs the verified flag; under AES-CBC any message
    that fails verification is undecryptable.

    Returns:
        DecryptedMessage (possibly undecryptable)
    """
    if shared_secret is None:
        try:
            shared_secret = derive_shared_secret(
                local_private_key, sender_public_key_bytes, profile.curve
            )
        except KeyImportError as exc:
            return DecryptedMessage.undecryptable(f"Sender key rejected: {exc}")

    engine = SymmetricCipherEngine(profile.cipher, profile.kdf_iterations)
    try:
        payload = engine.decrypt(envelope, shared_secret)
        message_bytes, signature = split_signed_plaintext(payload)
    except DecryptionError as exc:
        logger.warning("Failed to decrypt message: %s", exc)
        return DecryptedMessage.undecryptable(str(exc))

    content = message_bytes.decode('utf-8', errors='replace')

    if sender_signing_public_key is None:
        verified, error = False, "No signing key for sender"
    else:
        try:
            verified = verify(message_bytes, signature, sender_signing_public_key)
            error = None if verified else "Signature verification failed"
        except KeyImportError as exc:
            logger.warning("Sender signing key rejected: %s", exc)
            verified, error = False, str(exc)

    if verified:
        return DecryptedMessage(content=content, verified=True)

    # Without a cipher tag the signature is the only integrity check
    if not engine.authenticated:
        logger.warning("Unauthenticated %s message failed integrity check: %s",
                       engine.cipher_name, error)
        return DecryptedMessage.undecryptable(error)

    logger.warning("Message not verified: %s", error)
    return DecryptedMessage(content=content, verified=False, error=error)


async def encrypt_outgoing_async(*args, **kwargs) -> Envelope:
    """encrypt_outgoing on a worker thread."""
    return await asyncio.to_thread(encrypt_outgoing, *args, **kwargs)


async def decrypt_incoming_async(*args, **kwargs) -> DecryptedMessage:
    """decrypt_incoming on a worker thread."""
    return await asyncio.to_thread(decrypt_incoming, *args, **kwargs)


BatchItem = Tuple[Union[bytes, Envelope], bytes, Optional[PublicKeyLike]]


async def decrypt_batch(items: Iterable[BatchItem],
                        local_private_key: ec.EllipticCurvePrivateKey,
                        profile: SecurityProfile = DEFAULT_PROFILE) -> List[DecryptedMessage]:
    """
    Decrypt many envelopes concurrently.

    Each item is (envelope, sender_public_key_bytes, sender_signing_public_key).
    Results come back in input order; one failing item never affects the
    others.
    """
    return await gather_isolated(
        decrypt_incoming_async(envelope, local_private_key, sender_public,
                               sender_signing, profile)
        for envelope, sender_public, sender_signing in items
    )


async def gather_isolated(coros: Iterable[Awaitable[DecryptedMessage]]) -> List[DecryptedMessage]:
    """Await decryptions together, turning any escaped error into a placeholder."""
    results = await asyncio.gather(*coros, return_exceptions=True)

    messages = []
    for result in results:
        if isinstance(result, BaseException):
            logger.error("Unexpected error decrypting message", exc_info=result)
            messages.append(DecryptedMessage.undecryptable(repr(result)))
        else:
            messages.append(result)
    return messages
