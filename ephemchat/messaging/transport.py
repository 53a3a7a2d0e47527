"""
Transport collaborator.

The core never manages connections, retries or authentication; it talks
to the network through this narrow async interface. `InMemoryDirectory`
stands in for the real key directory and mailbox, stamping each envelope
with a send time and a 24-hour expiry the way the hosted ledger does.
"""

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional


MESSAGE_TTL_SECONDS = 24 * 60 * 60
NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class IncomingEnvelope:
    """One envelope as delivered by the transport."""
    sender: str
    envelope_bytes: bytes
    sender_public_key: bytes
    timestamp: int    # ns since epoch
    expires_at: int   # ns since epoch

    def seconds_remaining(self, now_ns: Optional[int] = None) -> int:
        """Whole seconds until expiry, never negative."""
        if now_ns is None:
            now_ns = time.time_ns()
        return max(0, (self.expires_at - now_ns) // NANOS_PER_SECOND)

    def is_expired(self, now_ns: Optional[int] = None) -> bool:
        if now_ns is None:
            now_ns = time.time_ns()
        return now_ns >= self.expires_at


class Transport(ABC):
    """Key directory plus mailbox, as seen by one authenticated identity."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Identity this transport acts as."""

    @abstractmethod
    async def publish_public_key(self, public_key: bytes) -> None:
        """Publish (or rotate) our key-exchange public key."""

    @abstractmethod
    async def publish_signing_key(self, public_key: bytes) -> None:
        """Publish (or rotate) our signature verification key."""

    @abstractmethod
    async def fetch_public_key(self, identity: str) -> Optional[bytes]:
        """Key-exchange public key of another identity, if published."""

    @abstractmethod
    async def fetch_signing_key(self, identity: str) -> Optional[bytes]:
        """Signature verification key of another identity, if published."""

    @abstractmethod
    async def send_envelope(self, recipient: str, envelope_bytes: bytes,
                            sender_public_key: bytes) -> None:
        """Deliver an envelope to a recipient's mailbox."""

    @abstractmethod
    async def poll_envelopes(self) -> List[IncomingEnvelope]:
        """All unexpired envelopes addressed to us, oldest first."""


class InMemoryDirectory:
    """
    Shared in-process key directory and mailboxes.

    Args:
        ttl_seconds: Lifetime of each message
        clock: Returns the current time in nanoseconds
    """

    def __init__(self, ttl_seconds: int = MESSAGE_TTL_SECONDS,
                 clock: Callable[[], int] = time.time_ns):
        self._ttl_ns = ttl_seconds * NANOS_PER_SECOND
        self._clock = clock
        self._public_keys: Dict[str, bytes] = {}
        self._signing_keys: Dict[str, bytes] = {}
        self._mailboxes: Dict[str, List[IncomingEnvelope]] = defaultdict(list)

    def transport_for(self, identity: str) -> 'InMemoryTransport':
        return InMemoryTransport(self, identity)

    def deliver(self, sender: str, recipient: str, envelope_bytes: bytes,
                sender_public_key: bytes) -> IncomingEnvelope:
        now = self._clock()
        envelope = IncomingEnvelope(
            sender=sender,
            envelope_bytes=bytes(envelope_bytes),
            sender_public_key=bytes(sender_public_key),
            timestamp=now,
            expires_at=now + self._ttl_ns,
        )
        self._mailboxes[recipient].append(envelope)
        return envelope

    def publish(self, identity: str, public_key: bytes, signing: bool = False) -> None:
        keys = self._signing_keys if signing else self._public_keys
        keys[identity] = bytes(public_key)

    def lookup(self, identity: str, signing: bool = False) -> Optional[bytes]:
        keys = self._signing_keys if signing else self._public_keys
        return keys.get(identity)

    def mailbox(self, identity: str) -> List[IncomingEnvelope]:
        """Live envelopes for an identity; expired ones are dropped."""
        now = self._clock()
        live = [e for e in self._mailboxes.get(identity, []) if not e.is_expired(now)]
        self._mailboxes[identity] = live
        return list(live)


class InMemoryTransport(Transport):
    """Transport bound to one identity on an InMemoryDirectory."""

    def __init__(self, directory: InMemoryDirectory, identity: str):
        self._directory = directory
        self._identity = identity

    @property
    def identity(self) -> str:
        return self._identity

    async def publish_public_key(self, public_key: bytes) -> None:
        self._directory.publish(self._identity, public_key)

    async def publish_signing_key(self, public_key: bytes) -> None:
        self._directory.publish(self._identity, public_key, signing=True)

    async def fetch_public_key(self, identity: str) -> Optional[bytes]:
        return self._directory.lookup(identity)

    async def fetch_signing_key(self, identity: str) -> Optional[bytes]:
        return self._directory.lookup(identity, signing=True)

    async def send_envelope(self, recipient: str, envelope_bytes: bytes,
                            sender_public_key: bytes) -> None:
        self._directory.deliver(self._identity, recipient, envelope_bytes,
                                sender_public_key)

    async def poll_envelopes(self) -> List[IncomingEnvelope]:
        return self._directory.mailbox(self._identity)
