"""
Keychain errors.

Every cryptographic step fails with a ``CryptoFailure`` subclass naming
the failed artifact and, when known, the role of the key involved.
Messages never carry key, passphrase or plaintext material.
"""
from enum import Enum
from typing import Optional


class CryptoFailureReason(Enum):
    """Kinds of cryptographic failure."""
    KEY_GENERATION = "key_generation"
    PASSPHRASE_ENCRYPTION = "passphrase_encryption"
    MESSAGE_SPLIT = "message_split"
    FINGERPRINT = "fingerprint"
    SIGNING = "signing"
    SIGNATURE_VERIFICATION = "signature_verification"
    CONTENT_ENCODING = "content_encoding"
    DECRYPTION = "decryption"


class CryptoFailure(Exception):
    """Base class for every cryptographic failure."""

    reason: Optional[CryptoFailureReason] = None

    def __init__(
        self,
        message: str,
        artifact: Optional[str] = None,
        key_role: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.artifact = artifact
        self.key_role = key_role

    def with_context(
        self,
        artifact: Optional[str] = None,
        key_role: Optional[str] = None,
    ) -> "CryptoFailure":
        """Fill in artifact and key role if they were not set yet."""
        if self.artifact is None:
            self.artifact = artifact
        if self.key_role is None:
            self.key_role = key_role
        return self

    @property
    def reason_value(self) -> str:
        """Reason name for log lines; 'unspecified' on the base class."""
        return self.reason.value if self.reason is not None else "unspecified"

    def __str__(self) -> str:
        parts = [self.message]
        if self.artifact:
            parts.append(f"artifact={self.artifact}")
        if self.key_role:
            parts.append(f"key_role={self.key_role}")
        return " ".join(parts)


class KeyGenerationFailure(CryptoFailure):
    reason = CryptoFailureReason.KEY_GENERATION


class PassphraseEncryptionFailure(CryptoFailure):
    reason = CryptoFailureReason.PASSPHRASE_ENCRYPTION


class MessageSplitFailure(CryptoFailure):
    reason = CryptoFailureReason.MESSAGE_SPLIT


class FingerprintFailure(CryptoFailure):
    reason = CryptoFailureReason.FINGERPRINT


class SigningFailure(CryptoFailure):
    reason = CryptoFailureReason.SIGNING


class SignatureVerificationFailure(CryptoFailure):
    reason = CryptoFailureReason.SIGNATURE_VERIFICATION


class ContentEncodingFailure(CryptoFailure):
    reason = CryptoFailureReason.CONTENT_ENCODING


class DecryptionFailure(CryptoFailure):
    reason = CryptoFailureReason.DECRYPTION


class SharingFailureReason(Enum):
    INCOMPLETE_INFORMATION = "incomplete_information"
    MISSING_SHARE_KEYS = "missing_share_keys"


class SharingFailure(Exception):
    """A share invitation could not be prepared."""

    def __init__(self, reason: SharingFailureReason, message: str = ""):
        super().__init__(message or reason.value)
        self.reason = reason


class IncompleteSharingInformation(SharingFailure):
    """Recipients have resolved keys but no assigned role."""

    def __init__(self, skipped_emails: list[str]):
        super().__init__(
            SharingFailureReason.INCOMPLETE_INFORMATION,
            f"{len(skipped_emails)} recipient(s) have no role assigned: "
            f"{', '.join(skipped_emails)}",
        )
        self.skipped_emails = list(skipped_emails)
