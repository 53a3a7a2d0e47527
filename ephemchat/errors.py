"""
Exception types raised by ephemchat.

A failed signature check is reported as a boolean on the decrypted
message, not raised.
"""


class EphemChatError(Exception):
    """Base class for all ephemchat errors."""


class KeyGenerationError(EphemChatError):
    """Key pair could not be generated (e.g. unsupported curve)."""


class KeyImportError(EphemChatError, ValueError):
    """Public key bytes are not a valid point on the expected curve."""


class DecryptionError(EphemChatError):
    """Envelope could not be decrypted (tag mismatch, bad padding, wrong key)."""


class MalformedEnvelopeError(DecryptionError):
    """Envelope bytes are too short or otherwise cannot be split."""


class SessionError(EphemChatError, RuntimeError):
    """Session used before its keys are ready or after it was closed."""


class RecipientKeyMissingError(EphemChatError):
    """Recipient has not published encryption keys to the directory."""

    def __init__(self, recipient: str):
        super().__init__(f"Recipient {recipient!r} has not set up encryption keys")
        self.recipient = recipient
