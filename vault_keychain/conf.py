"""
Keychain Configuration — Validated settings for key generation and locking.

Reads optional overrides from environment variables:
    KEYCHAIN_KDF_ITERATIONS = <int>          PBKDF2 rounds locking private keys
    KEYCHAIN_PASSPHRASE_BYTES = <int>        random bytes per key passphrase
    KEYCHAIN_CONTENT_FORMAT_VERSION = <int>  vault content format version

Security Note:
    Never log key material. Only log key roles, labels and fingerprints.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("keychain.config")

DEFAULT_KDF_ITERATIONS = 100_000
DEFAULT_PASSPHRASE_BYTES = 32
CONTENT_FORMAT_VERSION = 1

_SUPPORTED_CONTENT_FORMATS = (CONTENT_FORMAT_VERSION,)


def _int_from_env(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to ``default``.

    Raises:
        ValueError: If the variable is set but is not a valid integer.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


class KeychainConfig(BaseModel):
    """Validated keychain configuration."""

    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1000)
    passphrase_bytes: int = Field(default=DEFAULT_PASSPHRASE_BYTES, ge=16, le=64)
    content_format_version: int = Field(default=CONTENT_FORMAT_VERSION)

    model_config = {"frozen": True}

    @field_validator("content_format_version")
    @classmethod
    def validate_content_format(cls, v: int) -> int:
        """Validate the vault content format is supported."""
        if v not in _SUPPORTED_CONTENT_FORMATS:
            raise ValueError(f"Unsupported vault content format version: {v}")
        return v

    @classmethod
    def from_env(cls) -> "KeychainConfig":
        """Create KeychainConfig by loading values from environment.

        Returns:
            Populated KeychainConfig instance.
        """
        config = cls(
            kdf_iterations=_int_from_env(
                "KEYCHAIN_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS
            ),
            passphrase_bytes=_int_from_env(
                "KEYCHAIN_PASSPHRASE_BYTES", DEFAULT_PASSPHRASE_BYTES
            ),
            content_format_version=_int_from_env(
                "KEYCHAIN_CONTENT_FORMAT_VERSION", CONTENT_FORMAT_VERSION
            ),
        )
        logger.debug(
            "Loaded keychain config: kdf_iterations=%d passphrase_bytes=%d",
            config.kdf_iterations, config.passphrase_bytes,
        )
        return config
