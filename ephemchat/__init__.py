"""
ephemchat - end-to-end encrypted, self-expiring chat core.

Subpackages:
- core_crypto: keys, ECDH, symmetric engine, signatures, envelope codec
- messaging: profiles, pipeline, sessions, transport, chat client
- integration: security audit logging
"""

__version__ = "0.1.0"
