"""
Event Logger Module

Security audit trail for ephemchat sessions.
Every key and message event is recorded as a SecurityEvent.

Features:
- Session and key lifecycle events
- Message send / receive events
- Signature and decryption failure events
- Privacy-preserving identity hashes (SHA-256)
- JSON export / import of the audit log

Events never carry plaintext, key material or shared secrets; messages
are identified by a short hash of their envelope.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Callable

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

EVENT_VERSION = "1.0"
SHORT_HASH_LENGTH = 16


# ============================================================================
# Privacy Functions
# ============================================================================

def get_identity_hash(identity: str) -> str:
    """
    Compute privacy-preserving hash of an identity.

    Identities are never stored in plaintext in the audit log, while
    events for the same identity can still be correlated.

    Args:
        identity: The plaintext identity (principal, username, ...)

    Returns:
        Hex-encoded SHA-256 hash of the identity
    """
    return hashlib.sha256(identity.encode('utf-8')).hexdigest()


def get_identity_hash_short(identity: str) -> str:
    """First 16 hex characters of the identity hash."""
    return get_identity_hash(identity)[:SHORT_HASH_LENGTH]


def get_envelope_id(envelope_bytes: bytes) -> str:
    """Short identifier for an envelope (hash of its ciphertext bytes)."""
    return hashlib.sha256(envelope_bytes).hexdigest()[:SHORT_HASH_LENGTH]


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Types of security events that can be logged."""

    # Session events
    SESSION_START = "session_start"
    SESSION_END = "session_end"

    # Key events
    KEY_GENERATED = "key_generated"
    KEY_PUBLISHED = "key_published"
    KEY_EXCHANGE = "key_exchange"
    KEY_REJECTED = "key_rejected"

    # Messaging events
    MESSAGE_SEND = "message_send"
    MESSAGE_RECEIVE = "message_receive"
    SIGNATURE_FAILED = "signature_failed"
    DECRYPT_FAILED = "decrypt_failed"


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class SecurityEvent:
    """
    Represents a security event to be logged.

    All identifying information is hashed for privacy.
    """
    event_type: EventType
    identity_hash: str  # SHA-256 hash of the acting identity
    timestamp: int      # Unix timestamp
    details: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize event as compact JSON."""
        return json.dumps({
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'identity': self.identity_hash[:SHORT_HASH_LENGTH],
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'details': self.details,
        }, separators=(',', ':'))

    @classmethod
    def from_json(cls, data: str) -> 'SecurityEvent':
        """Parse event from its JSON form."""
        record = json.loads(data)
        return cls(
            event_type=EventType(record['type']),
            identity_hash=record['identity'],
            timestamp=record['time'],
            details=record.get('details', {}),
        )

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        return (
            f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} | "
            f"id:{self.identity_hash[:8]}..."
        )


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    In-memory security audit trail.

    Each event is also emitted on the module logger at INFO (or WARNING
    for failures) so hosts can route it with standard logging config.
    """

    _WARNING_EVENTS = {
        EventType.KEY_REJECTED,
        EventType.SIGNATURE_FAILED,
        EventType.DECRYPT_FAILED,
    }

    def __init__(self, events: Optional[List[SecurityEvent]] = None):
        self._events: List[SecurityEvent] = list(events or [])
        self._callbacks: List[Callable[[SecurityEvent], None]] = []

    def _add_event(self, event: SecurityEvent) -> SecurityEvent:
        self._events.append(event)

        level = logging.WARNING if event.event_type in self._WARNING_EVENTS else logging.INFO
        logger.log(level, "%s %s", event, event.details)

        for callback in self._callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Audit callback failed")
        return event

    def _record(self, event_type: EventType, identity: str,
                **details: Any) -> SecurityEvent:
        return self._add_event(SecurityEvent(
            event_type=event_type,
            identity_hash=get_identity_hash(identity),
            timestamp=int(time.time()),
            details=details,
        ))

    def add_callback(self, callback: Callable[[SecurityEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[SecurityEvent], None]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # ========================================================================
    # Session and Key Events
    # ========================================================================

    def log_session_start(self, identity: str, profile: str) -> SecurityEvent:
        return self._record(EventType.SESSION_START, identity, profile=profile)

    def log_session_end(self, identity: str) -> SecurityEvent:
        return self._record(EventType.SESSION_END, identity)

    def log_key_generated(self, identity: str, purpose: str,
                          curve: str) -> SecurityEvent:
        """
        Log generation of a key pair.

        Args:
            identity: Session owner (will be hashed)
            purpose: "key_exchange" or "signing"
            curve: Curve name
        """
        return self._record(EventType.KEY_GENERATED, identity,
                            purpose=purpose, curve=curve)

    def log_key_published(self, identity: str, purpose: str) -> SecurityEvent:
        return self._record(EventType.KEY_PUBLISHED, identity, purpose=purpose)

    def log_key_exchange(self, identity: str, peer: str,
                         algorithm: str = "ECDH-P384") -> SecurityEvent:
        """Log derivation of a shared secret with a peer."""
        return self._record(EventType.KEY_EXCHANGE, identity,
                            peer=get_identity_hash_short(peer), algo=algorithm)

    def log_key_rejected(self, identity: str, peer: str,
                         reason: str) -> SecurityEvent:
        """Log a peer public key that failed validation."""
        return self._record(EventType.KEY_REJECTED, identity,
                            peer=get_identity_hash_short(peer), reason=reason)

    # ========================================================================
    # Messaging Events
    # ========================================================================

    def log_message_send(
        self,
        sender: str,
        recipient: str,
        envelope_bytes: bytes,
        cipher: str = "AES-GCM"
    ) -> SecurityEvent:
        """
        Log a message send event.

        Args:
            sender: Sender identity (will be hashed)
            recipient: Recipient identity (will be hashed)
            envelope_bytes: Encrypted envelope (only its hash is stored)
            cipher: Symmetric cipher used

        Returns:
            The logged event
        """
        return self._record(
            EventType.MESSAGE_SEND, sender,
            to=get_identity_hash_short(recipient),
            msg_id=get_envelope_id(envelope_bytes),
            size=len(envelope_bytes),
            cipher=cipher,
            signed=True,
        )

    def log_message_receive(
        self,
        recipient: str,
        sender: str,
        envelope_bytes: bytes,
        verified: bool,
        decrypted: bool = True
    ) -> SecurityEvent:
        """
        Log the outcome of decrypting one incoming message.

        Failed decryptions and failed signatures are logged under their
        own event types.
        """
        if not decrypted:
            event_type = EventType.DECRYPT_FAILED
        elif not verified:
            event_type = EventType.SIGNATURE_FAILED
        else:
            event_type = EventType.MESSAGE_RECEIVE
        return self._record(
            event_type, recipient,
            **{'from': get_identity_hash_short(sender)},
            msg_id=get_envelope_id(envelope_bytes),
            verified=verified,
        )

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get_all_events(self) -> List[SecurityEvent]:
        return list(self._events)

    def get_identity_events(self, identity: str) -> List[SecurityEvent]:
        """
        Get all events for a specific identity.

        Args:
            identity: The identity to search for

        Returns:
            List of events for that identity
        """
        identity_hash = get_identity_hash(identity)
        return [e for e in self._events if e.identity_hash == identity_hash]

    def get_events_by_type(self, event_type: EventType) -> List[SecurityEvent]:
        """Get all events of a specific type."""
        return [e for e in self._events if e.event_type == event_type]

    def get_recent_events(self, count: int = 10) -> List[SecurityEvent]:
        """Get the most recent events."""
        if count <= 0:
            return []
        return self._events[-count:]

    def print_audit_log(self, last_n: Optional[int] = None) -> None:
        """Print the audit log in a readable format."""
        if last_n is None:
            events = self._events
        else:
            events = self.get_recent_events(last_n)

        print("\n" + "=" * 70)
        print("SECURITY AUDIT LOG")
        print("=" * 70)

        for event in events:
            print(event)
            for k, v in event.details.items():
                print(f"    {k}: {v}")

        print("=" * 70)
        print(f"Total events: {len(self._events)}")
        print("=" * 70)

    def export_log(self) -> str:
        """Export the audit log as a JSON array of events."""
        return json.dumps([json.loads(e.to_json()) for e in self._events])

    @classmethod
    def import_log(cls, json_str: str) -> 'EventLogger':
        """
        Import an audit log from JSON.

        Imported events keep only the short identity hash, so
        get_identity_events() does not match them.
        """
        records = json.loads(json_str)
        events = [SecurityEvent.from_json(json.dumps(r)) for r in records]
        return cls(events=events)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_event_logger() -> EventLogger:
    """Create a new, empty event logger."""
    return EventLogger()
