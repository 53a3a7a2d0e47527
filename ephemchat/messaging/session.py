"""
Session

Owns the key pairs for one client session:
- one key-exchange pair on the profile's curve
- one P-384 signing pair shared across all conversations

Key pairs are read-only once generated. Shared secrets are cached per
peer public key; peers that rotate their key publish new bytes, which
simply miss the cache. Keys are dropped on close() and never persisted.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Union

from ..core_crypto.ecdh import derive_shared_secret
from ..core_crypto.envelope import Envelope
from ..core_crypto.keypairs import (
    KeyExchangeKeyPair,
    SignatureKeyPair,
    generate_key_exchange_key_pair,
    generate_signature_key_pair,
)
from ..core_crypto.signatures import PublicKeyLike
from ..errors import KeyImportError, SessionError
from .pipeline import (
    BatchItem,
    DecryptedMessage,
    decrypt_incoming,
    encrypt_outgoing,
    gather_isolated,
)
from .profiles import DEFAULT_PROFILE, SecurityProfile

logger = logging.getLogger(__name__)


class Session:
    """
    Key material for one client session.

    Example:
        with Session.create() as alice, Session.create() as bob:
            envelope = alice.encrypt("hello", bob.public_key_bytes)
            message = bob.decrypt(envelope, alice.public_key_bytes,
                                  alice.signing_public_key_bytes)
    """

    def __init__(self, key_exchange_pair: KeyExchangeKeyPair,
                 signing_pair: SignatureKeyPair,
                 profile: SecurityProfile = DEFAULT_PROFILE):
        if key_exchange_pair.curve != profile.curve:
            raise SessionError(
                f"Key-exchange pair is on {key_exchange_pair.curve}, "
                f"profile {profile.name!r} requires {profile.curve}"
            )
        self._profile = profile
        self._key_exchange_pair: Optional[KeyExchangeKeyPair] = key_exchange_pair
        self._signing_pair: Optional[SignatureKeyPair] = signing_pair
        self._secrets: Dict[bytes, bytes] = {}

    @classmethod
    def create(cls, profile: SecurityProfile = DEFAULT_PROFILE) -> 'Session':
        """
        Generate a new session's key pairs.

        Raises:
            KeyGenerationError: Session cannot proceed
        """
        session = cls(
            generate_key_exchange_key_pair(profile.curve),
            generate_signature_key_pair(),
            profile,
        )
        logger.debug("Session created with profile %s", profile.name)
        return session

    @classmethod
    async def open(cls, profile: SecurityProfile = DEFAULT_PROFILE) -> 'Session':
        """Generate both key pairs concurrently on worker threads."""
        key_exchange_pair, signing_pair = await asyncio.gather(
            asyncio.to_thread(generate_key_exchange_key_pair, profile.curve),
            asyncio.to_thread(generate_signature_key_pair),
        )
        logger.debug("Session opened with profile %s", profile.name)
        return cls(key_exchange_pair, signing_pair, profile)

    # ------------------------------------------------------------------
    # Key access
    # ------------------------------------------------------------------

    @property
    def profile(self) -> SecurityProfile:
        return self._profile

    @property
    def closed(self) -> bool:
        return self._key_exchange_pair is None

    @property
    def key_exchange_pair(self) -> KeyExchangeKeyPair:
        if self._key_exchange_pair is None:
            raise SessionError("Session is closed")
        return self._key_exchange_pair

    @property
    def signing_pair(self) -> SignatureKeyPair:
        if self._signing_pair is None:
            raise SessionError("Session is closed")
        return self._signing_pair

    @property
    def public_key_bytes(self) -> bytes:
        """Key-exchange public key to publish."""
        return self.key_exchange_pair.public_bytes()

    @property
    def signing_public_key_bytes(self) -> bytes:
        """Signature verification key to publish."""
        return self.signing_pair.public_bytes()

    def shared_secret(self, remote_public_key_bytes: bytes) -> bytes:
        """
        Shared secret with a peer, derived once and then cached.

        Raises:
            KeyImportError: If the peer key is invalid
        """
        if not isinstance(remote_public_key_bytes, (bytes, bytearray)):
            raise KeyImportError("Peer public key must be bytes")
        remote_public_key_bytes = bytes(remote_public_key_bytes)
        secret = self._secrets.get(remote_public_key_bytes)
        if secret is None:
            secret = derive_shared_secret(
                self.key_exchange_pair.private_key,
                remote_public_key_bytes,
                self._profile.curve,
            )
            self._secrets[remote_public_key_bytes] = secret
        return secret

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def encrypt(self, text: str, recipient_public_key_bytes: bytes) -> Envelope:
        """Encrypt an outgoing message; failures propagate."""
        return encrypt_outgoing(
            text,
            self.key_exchange_pair.private_key,
            recipient_public_key_bytes,
            self.signing_pair,
            self._profile,
            shared_secret=self.shared_secret(recipient_public_key_bytes),
        )

    def decrypt(self, envelope: Union[bytes, Envelope],
                sender_public_key_bytes: bytes,
                sender_signing_public_key: Optional[PublicKeyLike]) -> DecryptedMessage:
        """Decrypt an incoming message; never raises for bad input."""
        try:
            secret = self.shared_secret(sender_public_key_bytes)
        except KeyImportError as exc:
            return DecryptedMessage.undecryptable(f"Sender key rejected: {exc}")
        return decrypt_incoming(
            envelope,
            self.key_exchange_pair.private_key,
            sender_public_key_bytes,
            sender_signing_public_key,
            self._profile,
            shared_secret=secret,
        )

    async def decrypt_batch(self, items: Iterable[BatchItem]) -> List[DecryptedMessage]:
        """Decrypt many messages concurrently, preserving order."""
        return await gather_isolated(
            asyncio.to_thread(self.decrypt, envelope, sender_public, sender_signing)
            for envelope, sender_public, sender_signing in items
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Drop all key material. Further use raises SessionError."""
        self._key_exchange_pair = None
        self._signing_pair = None
        self._secrets.clear()

    def __enter__(self) -> 'Session':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
