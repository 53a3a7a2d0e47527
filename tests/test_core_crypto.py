"""
Unit tests for core cryptography.

Tests:
- Key pair generation and public key export/import
- ECDH shared secret agreement
- PBKDF2 + AES-GCM / AES-CBC symmetric engine
- ECDSA P-384 signatures
- Envelope codec
"""

import os

import pytest

from ephemchat.core_crypto.ciphers import (
    SymmetricCipherEngine,
    derive_message_key,
    encrypt,
    decrypt,
    get_cipher,
)
from ephemchat.core_crypto import envelope as envelope_module
from ephemchat.core_crypto.curves import CURVES, get_curve
from ephemchat.core_crypto.ecdh import derive_shared_secret
from ephemchat.core_crypto.envelope import (
    Envelope,
    HEADER_SIZE,
    join_signed_plaintext,
    split_signed_plaintext,
)
from ephemchat.core_crypto.keypairs import (
    export_public_key,
    generate_key_exchange_key_pair,
    generate_signature_key_pair,
    import_public_key,
)
from ephemchat.core_crypto.signatures import SIGNATURE_SIZE, sign, verify
from ephemchat.errors import (
    DecryptionError,
    KeyGenerationError,
    KeyImportError,
    MalformedEnvelopeError,
)


class TestKeyPairs:
    """Tests for key pair generation and export."""

    @pytest.mark.parametrize("curve", sorted(CURVES))
    def test_generate_key_exchange_pair(self, curve):
        """Key-exchange pairs should be generated on every supported curve."""
        pair = generate_key_exchange_key_pair(curve)
        assert pair.curve == curve
        assert len(export_public_key(pair)) == get_curve(curve).public_key_size

    def test_default_curve_is_p384(self):
        """Default key-exchange curve should be P-384."""
        pair = generate_key_exchange_key_pair()
        assert pair.curve == "P-384"
        assert len(export_public_key(pair)) == 97

    def test_unsupported_curve_rejected(self):
        """Unknown curves should raise KeyGenerationError."""
        with pytest.raises(KeyGenerationError):
            generate_key_exchange_key_pair("P-192")

    def test_signature_pair_is_p384(self):
        pair = generate_signature_key_pair()
        assert pair.curve == "P-384"

    def test_export_is_deterministic(self):
        """Exporting the same pair twice should give identical bytes."""
        pair = generate_key_exchange_key_pair()
        assert export_public_key(pair) == export_public_key(pair)

    def test_export_uncompressed_point(self):
        pair = generate_key_exchange_key_pair("P-256")
        assert export_public_key(pair)[0] == 0x04

    def test_import_roundtrip(self):
        """An exported key should import back to the same point."""
        pair = generate_key_exchange_key_pair("P-521")
        data = export_public_key(pair)
        imported = import_public_key(data, "P-521")
        assert imported.public_numbers() == pair.public_key.public_numbers()


class TestECDH:
    """Tests for shared secret derivation."""

    @pytest.mark.parametrize("curve", sorted(CURVES))
    def test_shared_secret_agreement(self, curve):
        """Both parties should derive the same 32-byte secret."""
        alice = generate_key_exchange_key_pair(curve)
        bob = generate_key_exchange_key_pair(curve)

        alice_secret = derive_shared_secret(alice.private_key, bob.public_bytes())
        bob_secret = derive_shared_secret(bob.private_key, alice.public_bytes())

        assert alice_secret == bob_secret
        assert len(alice_secret) == 32

    def test_different_peers_different_secrets(self):
        alice = generate_key_exchange_key_pair()
        bob1 = generate_key_exchange_key_pair()
        bob2 = generate_key_exchange_key_pair()

        secret1 = derive_shared_secret(alice.private_key, bob1.public_bytes())
        secret2 = derive_shared_secret(alice.private_key, bob2.public_bytes())

        assert secret1 != secret2

    def test_ten_byte_key_rejected(self):
        """A malformed 10-byte public key should raise KeyImportError."""
        alice = generate_key_exchange_key_pair()
        with pytest.raises(KeyImportError):
            derive_shared_secret(alice.private_key, os.urandom(10))

    def test_point_off_curve_rejected(self):
        """Correct length but not on the curve should be rejected."""
        alice = generate_key_exchange_key_pair()
        bogus = b"\x04" + b"\x01" * 96
        with pytest.raises(KeyImportError):
            derive_shared_secret(alice.private_key, bogus)

    def test_identity_rejected(self):
        """A correctly sized all-zero point is not on the curve."""
        alice = generate_key_exchange_key_pair()
        with pytest.raises(KeyImportError, match="Invalid P-384 public key"):
            derive_shared_secret(alice.private_key, b"\x04" + bytes(96))

    def test_compressed_point_rejected(self):
        alice = generate_key_exchange_key_pair()
        bob = generate_key_exchange_key_pair()
        compressed = bytes([0x02 + (bob.public_key.public_numbers().y & 1)])
        compressed += bob.public_key.public_numbers().x.to_bytes(48, 'big')
        padded = compressed + bytes(97 - len(compressed))
        with pytest.raises(KeyImportError):
            derive_shared_secret(alice.private_key, padded)

    def test_curve_mismatch_rejected(self):
        """A peer key from another curve should be rejected."""
        alice = generate_key_exchange_key_pair("P-384")
        bob = generate_key_exchange_key_pair("P-256")
        with pytest.raises(KeyImportError):
            derive_shared_secret(alice.private_key, bob.public_bytes())

    def test_explicit_curve_must_match_local_key(self):
        alice = generate_key_exchange_key_pair("P-384")
        bob = generate_key_exchange_key_pair("P-384")
        with pytest.raises(KeyImportError):
            derive_shared_secret(alice.private_key, bob.public_bytes(), "P-256")


class TestKeyDerivation:
    """Tests for PBKDF2 per-message keys."""

    def test_key_length(self):
        key = derive_message_key(os.urandom(32), os.urandom(16))
        assert len(key) == 32

    def test_deterministic(self):
        """Same secret and salt should give the same key."""
        secret = b"fixed_secret_for_test"
        salt = b"fixed_salt_16byt"
        assert derive_message_key(secret, salt) == derive_message_key(secret, salt)

    def test_salt_changes_key(self):
        secret = os.urandom(32)
        assert derive_message_key(secret, os.urandom(16)) != derive_message_key(secret, os.urandom(16))


class TestSymmetricEngine:
    """Tests for the symmetric cipher engine."""

    @pytest.mark.parametrize("cipher", ["AES-GCM", "AES-CBC"])
    def test_encrypt_decrypt(self, cipher):
        """Encryption/decryption roundtrip should work."""
        secret = os.urandom(32)
        plaintext = b"Hello, secure world!"
        envelope = encrypt(plaintext, secret, cipher)
        assert decrypt(envelope.to_bytes(), secret, cipher) == plaintext

    def test_envelope_layout(self):
        """Envelope should be salt(16) | iv(12) | ciphertext."""
        envelope = encrypt(b"message", os.urandom(32))
        raw = envelope.to_bytes()
        assert raw[:16] == envelope.salt
        assert raw[16:28] == envelope.iv
        assert raw[28:] == envelope.ciphertext
        # GCM appends a 16-byte tag
        assert len(envelope.ciphertext) == len(b"message") + 16

    def test_fresh_salt_and_iv(self):
        """Same plaintext and secret should never give the same envelope."""
        secret = os.urandom(32)
        engine = SymmetricCipherEngine()
        first = engine.encrypt(b"message", secret)
        second = engine.encrypt(b"message", secret)

        assert first.salt != second.salt
        assert first.iv != second.iv
        assert first.to_bytes() != second.to_bytes()

    def test_wrong_secret_rejected(self):
        envelope = encrypt(b"message", os.urandom(32))
        with pytest.raises(DecryptionError):
            decrypt(envelope.to_bytes(), os.urandom(32))

    def test_modified_ciphertext_rejected(self):
        """Modified GCM ciphertext should fail decryption."""
        secret = os.urandom(32)
        raw = bytearray(encrypt(b"secret message", secret).to_bytes())
        raw[HEADER_SIZE] ^= 0x01
        with pytest.raises(DecryptionError):
            decrypt(bytes(raw), secret)

    def test_truncated_envelope_rejected(self):
        with pytest.raises(MalformedEnvelopeError):
            decrypt(os.urandom(HEADER_SIZE), os.urandom(32))

    def test_cbc_bad_length_rejected(self):
        secret = os.urandom(32)
        raw = encrypt(b"secret message", secret, "AES-CBC").to_bytes()
        with pytest.raises(DecryptionError):
            decrypt(raw[:-3], secret, "AES-CBC")

    def test_cipher_mismatch_rejected(self):
        """A CBC envelope should not decrypt as GCM."""
        secret = os.urandom(32)
        raw = encrypt(b"secret message", secret, "AES-CBC").to_bytes()
        with pytest.raises(DecryptionError):
            decrypt(raw, secret, "AES-GCM")

    def test_iteration_mismatch_rejected(self):
        secret = os.urandom(32)
        raw = encrypt(b"message", secret, iterations=100_000).to_bytes()
        with pytest.raises(DecryptionError):
            decrypt(raw, secret, iterations=100_001)

    def test_cipher_flags(self):
        assert get_cipher("AES-GCM").authenticated
        assert not get_cipher("AES-CBC").authenticated

    def test_unknown_cipher(self):
        with pytest.raises(KeyError):
            SymmetricCipherEngine("ChaCha20")


class TestSignatures:
    """Tests for ECDSA P-384 signatures."""

    def test_sign_verify(self):
        pair = generate_signature_key_pair()
        signature = sign("Message to sign", pair.private_key)

        assert len(signature) == SIGNATURE_SIZE == 96
        assert verify("Message to sign", signature, pair.public_key)

    def test_verify_with_raw_key_bytes(self):
        pair = generate_signature_key_pair()
        signature = sign("hello", pair.private_key)
        assert verify("hello", signature, pair.public_bytes())

    def test_str_and_utf8_bytes_equivalent(self):
        pair = generate_signature_key_pair()
        signature = sign("héllo ✓", pair.private_key)
        assert verify("héllo ✓".encode('utf-8'), signature, pair.public_key)

    def test_wrong_message_rejected(self):
        pair = generate_signature_key_pair()
        signature = sign("original message", pair.private_key)
        assert not verify("different message", signature, pair.public_key)

    def test_tampered_signature_rejected(self):
        pair = generate_signature_key_pair()
        signature = bytearray(sign("test message", pair.private_key))
        signature[10] ^= 0xFF
        assert not verify("test message", bytes(signature), pair.public_key)

    def test_wrong_length_signature_returns_false(self):
        """Signature mismatch must never raise."""
        pair = generate_signature_key_pair()
        assert not verify("test", b"\x00" * 10, pair.public_key)

    def test_wrong_public_key_rejected(self):
        pair1 = generate_signature_key_pair()
        pair2 = generate_signature_key_pair()
        signature = sign("test", pair1.private_key)
        assert not verify("test", signature, pair2.public_key)

    def test_malformed_key_raises(self):
        """Malformed key material is the only verify error."""
        pair = generate_signature_key_pair()
        signature = sign("test", pair.private_key)
        with pytest.raises(KeyImportError):
            verify("test", signature, b"\x04" + b"\x00" * 20)

    def test_key_on_wrong_curve_raises(self):
        other = generate_key_exchange_key_pair("P-256")
        pair = generate_signature_key_pair()
        signature = sign("test", pair.private_key)
        with pytest.raises(KeyImportError):
            verify("test", signature, other.public_key)

    def test_sign_requires_p384(self):
        other = generate_key_exchange_key_pair("P-256")
        with pytest.raises(ValueError):
            sign("test", other.private_key)


class TestEnvelopeCodec:
    """Tests for the envelope wire format."""

    def test_signature_width_matches_signing_curve(self):
        """The payload split uses the same width the signer produces."""
        signer = generate_signature_key_pair()
        signature = sign(b"width", signer.private_key)
        assert envelope_module.SIGNATURE_SIZE == SIGNATURE_SIZE
        assert envelope_module.SIGNATURE_SIZE == get_curve("P-384").signature_size
        message, split_off = split_signed_plaintext(join_signed_plaintext(b"width", signature))
        assert (message, split_off) == (b"width", signature)

    def test_from_bytes_splits_fields(self):
        raw = bytes(range(16)) + bytes(range(100, 112)) + b"ciphertext"
        envelope = Envelope.from_bytes(raw)
        assert envelope.salt == bytes(range(16))
        assert envelope.iv == bytes(range(100, 112))
        assert envelope.ciphertext == b"ciphertext"
        assert envelope.to_bytes() == raw
        assert len(envelope) == len(raw)

    def test_header_only_rejected(self):
        with pytest.raises(MalformedEnvelopeError):
            Envelope.from_bytes(b"\x00" * 28)

    def test_bad_field_sizes_rejected(self):
        with pytest.raises(MalformedEnvelopeError):
            Envelope(salt=b"\x00" * 8, iv=b"\x00" * 12, ciphertext=b"x")

    def test_text_forms(self):
        envelope = Envelope(salt=os.urandom(16), iv=os.urandom(12), ciphertext=b"data")
        assert Envelope.from_hex(envelope.to_hex()) == envelope
        assert Envelope.from_base64(envelope.to_base64()) == envelope

    def test_invalid_text_rejected(self):
        with pytest.raises(MalformedEnvelopeError):
            Envelope.from_hex("zz")
        with pytest.raises(MalformedEnvelopeError):
            Envelope.from_base64("not base64!!")

    def test_signed_plaintext_split(self):
        signature = os.urandom(96)
        joined = join_signed_plaintext(b"hello", signature)
        assert split_signed_plaintext(joined) == (b"hello", signature)

    def test_empty_message_split(self):
        signature = os.urandom(96)
        assert split_signed_plaintext(signature) == (b"", signature)

    def test_short_payload_rejected(self):
        with pytest.raises(MalformedEnvelopeError):
            split_signed_plaintext(b"\x00" * 95)
