# Core Cryptography Module
"""
Core cryptographic building blocks including:
- Curve registry (P-256, P-384, P-521) - curves.py
- Key pair generation and public key import/export - keypairs.py
- ECDH shared secret derivation - ecdh.py
- PBKDF2 + AES-GCM / AES-CBC symmetric engine - ciphers.py
- ECDSA P-384 / SHA-384 signatures - signatures.py
- Envelope wire format - envelope.py
"""

from .curves import (
    CURVES,
    DEFAULT_CURVE,
    CurveProvider,
    get_curve,
)

from .keypairs import (
    KeyExchangeKeyPair,
    SignatureKeyPair,
    generate_key_exchange_key_pair,
    generate_signature_key_pair,
    export_public_key,
    import_public_key,
)

from .ecdh import derive_shared_secret

from .ciphers import (
    CIPHERS,
    CipherProvider,
    SymmetricCipherEngine,
    derive_message_key,
    get_cipher,
    encrypt,
    decrypt,
    PBKDF2_ITERATIONS,
)

from .signatures import sign, verify, SIGNATURE_SIZE

from .envelope import (
    Envelope,
    join_signed_plaintext,
    split_signed_plaintext,
)

__all__ = [
    # Curves
    'CURVES',
    'DEFAULT_CURVE',
    'CurveProvider',
    'get_curve',
    # Keys
    'KeyExchangeKeyPair',
    'SignatureKeyPair',
    'generate_key_exchange_key_pair',
    'generate_signature_key_pair',
    'export_public_key',
    'import_public_key',
    'derive_shared_secret',
    # Symmetric
    'CIPHERS',
    'CipherProvider',
    'SymmetricCipherEngine',
    'derive_message_key',
    'get_cipher',
    'encrypt',
    'decrypt',
    'PBKDF2_ITERATIONS',
    # Signatures
    'sign',
    'verify',
    'SIGNATURE_SIZE',
    # Envelope
    'Envelope',
    'join_signed_plaintext',
    'split_signed_plaintext',
]
