# Secure Messaging Module
"""
End-to-end encrypted messaging built on core_crypto:
- Security profiles (curve, cipher, KDF iterations) - profiles.py
- encrypt_outgoing / decrypt_incoming pipeline - pipeline.py
- Session key ownership and lifecycle - session.py
- Transport interface and in-memory directory - transport.py
- Chat client tying a session to a transport - client.py

Message format: [salt (16) | iv (12) | ciphertext]
Sealed payload: [message text | ECDSA P-384 signature (96)]

Security features:
- Fresh salt and IV per message
- PBKDF2 (100,000 iterations) per-message keys
- Signature sealed inside the ciphertext
- Per-message failure isolation on receive
"""

from .profiles import (
    SecurityProfile,
    PROFILES,
    DEFAULT_PROFILE,
    get_profile,
)

from .pipeline import (
    DecryptedMessage,
    UNDECRYPTABLE_CONTENT,
    encrypt_outgoing,
    decrypt_incoming,
    encrypt_outgoing_async,
    decrypt_incoming_async,
    decrypt_batch,
)

from .session import Session

from .transport import (
    Transport,
    IncomingEnvelope,
    InMemoryDirectory,
    InMemoryTransport,
    MESSAGE_TTL_SECONDS,
)

from .client import ChatClient, ReceivedMessage

__all__ = [
    # Profiles
    'SecurityProfile',
    'PROFILES',
    'DEFAULT_PROFILE',
    'get_profile',
    # Pipeline
    'DecryptedMessage',
    'UNDECRYPTABLE_CONTENT',
    'encrypt_outgoing',
    'decrypt_incoming',
    'encrypt_outgoing_async',
    'decrypt_incoming_async',
    'decrypt_batch',
    # Session
    'Session',
    # Transport
    'Transport',
    'IncomingEnvelope',
    'InMemoryDirectory',
    'InMemoryTransport',
    'MESSAGE_TTL_SECONDS',
    # Client
    'ChatClient',
    'ReceivedMessage',
]
