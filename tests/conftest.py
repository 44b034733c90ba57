"""Shared fixtures: a fast provider, an address key and a built vault."""
import pytest

from vault_keychain.conf import KeychainConfig
from vault_keychain.crypto import CryptographyProvider
from vault_keychain.models import VaultContent
from vault_keychain.vault import VaultKeyHierarchyBuilder


@pytest.fixture(scope="session")
def provider():
    """Provider with the minimum KDF rounds so tests stay fast."""
    return CryptographyProvider(KeychainConfig(kdf_iterations=1000))


@pytest.fixture(scope="session")
def address(provider):
    """(address_key, address_passphrase) of the vault creator."""
    return provider.generate_key_pair("alice@example.com")


@pytest.fixture(scope="session")
def content():
    return VaultContent(name="Personal", description="My things", icon="lock")


@pytest.fixture(scope="session")
def hierarchy(provider, address, content):
    address_key, address_passphrase = address
    builder = VaultKeyHierarchyBuilder(provider)
    return builder.build("addr-1", address_key, address_passphrase, content)
