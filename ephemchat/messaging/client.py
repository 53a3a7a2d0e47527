"""
Chat client.

Binds a Session to a Transport:
- start(): generate keys in the background and publish the public halves
- send_message(): fetch the recipient's key, encrypt, hand to the transport
- fetch_messages(): poll, decrypt the batch, return results in order

Send and fetch wait for key generation to finish before touching keys.
Polling intervals and countdown rendering belong to the host application,
which simply calls fetch_messages() on its own schedule.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from ..core_crypto.envelope import Envelope
from ..errors import KeyImportError, RecipientKeyMissingError, SessionError
from ..integration.event_logger import EventLogger
from .pipeline import DecryptedMessage
from .profiles import DEFAULT_PROFILE, SecurityProfile
from .session import Session
from .transport import IncomingEnvelope, Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceivedMessage:
    """A decrypted message together with its delivery metadata."""
    sender: str
    message: DecryptedMessage
    timestamp: int    # ns since epoch
    expires_at: int   # ns since epoch
    envelope: IncomingEnvelope

    @property
    def content(self) -> str:
        return self.message.content

    @property
    def verified(self) -> bool:
        return self.message.verified

    @property
    def decrypted(self) -> bool:
        return self.message.decrypted

    def seconds_remaining(self, now_ns: Optional[int] = None) -> int:
        """Remaining lifetime; undecryptable messages report 0."""
        if not self.message.decrypted:
            return 0
        return self.envelope.seconds_remaining(now_ns)


class ChatClient:
    """
    End-to-end encrypted chat over an untrusted transport.

    Example:
        directory = InMemoryDirectory()
        alice = ChatClient(directory.transport_for("alice"))
        bob = ChatClient(directory.transport_for("bob"))
        await alice.start(); await bob.start()

        await alice.send_message("bob", "hello")
        messages = await bob.fetch_messages()
    """

    def __init__(self, transport: Transport,
                 profile: SecurityProfile = DEFAULT_PROFILE,
                 event_logger: Optional[EventLogger] = None):
        self._transport = transport
        self._profile = profile
        self._events = event_logger or EventLogger()
        self._setup: Optional[asyncio.Task] = None
        self._exchanged: Set[str] = set()

    @property
    def identity(self) -> str:
        return self._transport.identity

    @property
    def profile(self) -> SecurityProfile:
        return self._profile

    @property
    def event_logger(self) -> EventLogger:
        return self._events

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Begin key generation and publication in the background.

        Returns immediately; send/fetch wait until setup completes.
        """
        if self._setup is None:
            self._setup = asyncio.ensure_future(self._open_session())

    async def _open_session(self) -> Session:
        session = await Session.open(self._profile)
        self._events.log_session_start(self.identity, self._profile.name)
        self._events.log_key_generated(self.identity, "key_exchange", self._profile.curve)
        self._events.log_key_generated(self.identity, "signing", session.signing_pair.curve)

        await self._transport.publish_public_key(session.public_key_bytes)
        self._events.log_key_published(self.identity, "key_exchange")
        await self._transport.publish_signing_key(session.signing_public_key_bytes)
        self._events.log_key_published(self.identity, "signing")
        return session

    async def wait_ready(self) -> Session:
        """
        Wait for key setup to finish.

        Raises:
            SessionError: If start() was never called or the session closed
            KeyGenerationError: If key generation failed
        """
        if self._setup is None:
            raise SessionError("Client not started")
        session = await self._setup
        if session.closed:
            raise SessionError("Session is closed")
        return session

    async def close(self) -> None:
        """
        Destroy the session's keys.

        A client whose setup failed has no keys to destroy; wait_ready()
        keeps reporting the setup error.
        """
        if self._setup is None:
            return
        try:
            session = await self._setup
        except Exception:
            logger.warning("Closing %s after failed setup", self.identity, exc_info=True)
            return
        if not session.closed:
            session.close()
            self._events.log_session_end(self.identity)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(self, recipient: str, text: str) -> Envelope:
        """
        Encrypt and send a message.

        Raises:
            RecipientKeyMissingError: Recipient has no published key
            KeyImportError: Recipient's published key is malformed
        """
        session = await self.wait_ready()

        recipient_key = await self._transport.fetch_public_key(recipient)
        if recipient_key is None:
            raise RecipientKeyMissingError(recipient)

        try:
            envelope = await asyncio.to_thread(session.encrypt, text, recipient_key)
        except KeyImportError as exc:
            self._events.log_key_rejected(self.identity, recipient, str(exc))
            raise

        if recipient not in self._exchanged:
            self._exchanged.add(recipient)
            self._events.log_key_exchange(self.identity, recipient,
                                          algorithm=f"ECDH-{self._profile.curve}")

        envelope_bytes = envelope.to_bytes()
        await self._transport.send_envelope(recipient, envelope_bytes,
                                            session.public_key_bytes)
        self._events.log_message_send(self.identity, recipient, envelope_bytes,
                                      cipher=self._profile.cipher)
        return envelope

    async def fetch_messages(self) -> List[ReceivedMessage]:
        """
        Poll and decrypt every pending message.

        Individual failures become undecryptable or unverified entries;
        only transport errors propagate.
        """
        session = await self.wait_ready()
        incoming = await self._transport.poll_envelopes()

        signing_keys: Dict[str, Optional[bytes]] = {}
        for item in incoming:
            if item.sender not in signing_keys:
                signing_keys[item.sender] = await self._transport.fetch_signing_key(item.sender)

        results = await session.decrypt_batch(
            (item.envelope_bytes, item.sender_public_key, signing_keys[item.sender])
            for item in incoming
        )

        received = []
        for item, message in zip(incoming, results):
            self._events.log_message_receive(
                self.identity, item.sender, item.envelope_bytes,
                verified=message.verified, decrypted=message.decrypted,
            )
            received.append(ReceivedMessage(
                sender=item.sender,
                message=message,
                timestamp=item.timestamp,
                expires_at=item.expires_at,
                envelope=item,
            ))
        logger.debug("Fetched %d messages for %s", len(received), self.identity)
        return received
