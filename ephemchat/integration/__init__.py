# Integration Module
"""
Security audit logging for sessions and messages.

All events are logged with privacy-preserving identity hashes.
"""

from .event_logger import (
    EventType,
    SecurityEvent,
    EventLogger,
    get_identity_hash,
    create_event_logger,
)

__all__ = [
    'EventType',
    'SecurityEvent',
    'EventLogger',
    'get_identity_hash',
    'create_event_logger',
]
