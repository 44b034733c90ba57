"""Tests for KeychainConfig validation and environment loading."""
import pytest
from pydantic import ValidationError

from vault_keychain.conf import (
    CONTENT_FORMAT_VERSION,
    DEFAULT_KDF_ITERATIONS,
    DEFAULT_PASSPHRASE_BYTES,
    KeychainConfig,
)


class TestKeychainConfig:

    def test_defaults(self):
        config = KeychainConfig()
        assert config.kdf_iterations == DEFAULT_KDF_ITERATIONS
        assert config.passphrase_bytes == DEFAULT_PASSPHRASE_BYTES
        assert config.content_format_version == CONTENT_FORMAT_VERSION == 1

    def test_low_iterations_rejected(self):
        with pytest.raises(ValidationError):
            KeychainConfig(kdf_iterations=999)

    @pytest.mark.parametrize("size", [15, 65])
    def test_passphrase_bytes_out_of_range(self, size):
        with pytest.raises(ValidationError):
            KeychainConfig(passphrase_bytes=size)

    def test_unsupported_content_format(self):
        with pytest.raises(ValidationError, match="Unsupported"):
            KeychainConfig(content_format_version=2)

    def test_config_is_frozen(self):
        config = KeychainConfig()
        with pytest.raises(ValidationError):
            config.kdf_iterations = 5000


class TestFromEnv:

    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("KEYCHAIN_KDF_ITERATIONS", raising=False)
        monkeypatch.delenv("KEYCHAIN_PASSPHRASE_BYTES", raising=False)
        monkeypatch.delenv("KEYCHAIN_CONTENT_FORMAT_VERSION", raising=False)
        assert KeychainConfig.from_env() == KeychainConfig()

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("KEYCHAIN_KDF_ITERATIONS", "2000")
        monkeypatch.setenv("KEYCHAIN_PASSPHRASE_BYTES", "24")
        config = KeychainConfig.from_env()
        assert config.kdf_iterations == 2000
        assert config.passphrase_bytes == 24

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("KEYCHAIN_KDF_ITERATIONS", "  ")
        assert KeychainConfig.from_env().kdf_iterations == DEFAULT_KDF_ITERATIONS

    def test_non_integer_value(self, monkeypatch):
        monkeypatch.setenv("KEYCHAIN_PASSPHRASE_BYTES", "lots")
        with pytest.raises(ValueError, match="KEYCHAIN_PASSPHRASE_BYTES"):
            KeychainConfig.from_env()
