"""Tests for ShareKeyRewrapper."""
import pytest

from vault_keychain.exceptions import (
    ContentEncodingFailure,
    DecryptionFailure,
    PassphraseEncryptionFailure,
)
from vault_keychain.sharing import ShareKeyRewrapper


@pytest.fixture(scope="module")
def recipient(provider):
    return provider.generate_key_pair("bob@example.com")


class TestShareKeyRewrapper:

    def test_recipient_recovers_passphrase(self, provider, hierarchy, recipient):
        vault = hierarchy.vault
        bob, bob_passphrase = recipient
        wrapped = ShareKeyRewrapper(provider).rewrap(
            vault.key, vault.passphrase.get_secret_value(), bob.public_key,
        )
        assert provider.decrypt_split_message(
            wrapped.key_packet, wrapped.data_packet, bob.private_key, bob_passphrase,
        ).decode() == vault.passphrase.get_secret_value()

    def test_creator_cannot_read_rewrapped(self, provider, address, hierarchy, recipient):
        vault = hierarchy.vault
        wrapped = ShareKeyRewrapper(provider).rewrap(
            vault.key, vault.passphrase.get_secret_value(), recipient[0],
        )
        with pytest.raises(DecryptionFailure):
            provider.decrypt_split_message(
                wrapped.key_packet, wrapped.data_packet,
                address[0].private_key, address[1],
            )

    def test_fresh_packets_each_time(self, provider, hierarchy, recipient):
        rewrapper = ShareKeyRewrapper(provider)
        vault = hierarchy.vault
        first = rewrapper.rewrap(vault.key, vault.passphrase.get_secret_value(), recipient[0])
        second = rewrapper.rewrap(vault.key, vault.passphrase.get_secret_value(), recipient[0])
        assert first.key_packet != second.key_packet

    def test_wrong_passphrase(self, provider, hierarchy, recipient):
        with pytest.raises(PassphraseEncryptionFailure) as info:
            ShareKeyRewrapper(provider).rewrap(hierarchy.vault.key, "wrong", recipient[0])
        assert info.value.artifact == "VaultKey_passphrase"

    def test_bad_recipient_key(self, provider, hierarchy):
        vault = hierarchy.vault
        with pytest.raises(ContentEncodingFailure):
            ShareKeyRewrapper(provider).rewrap(
                vault.key, vault.passphrase.get_secret_value(), "not a key",
            )

    def test_rewrap_all_keeps_order(self, provider, hierarchy, recipient):
        bob, bob_passphrase = recipient
        pairs = [
            (hierarchy.vault.key, hierarchy.vault.passphrase.get_secret_value()),
            (hierarchy.item.key, hierarchy.item.passphrase.get_secret_value()),
        ]
        wrapped = ShareKeyRewrapper(provider).rewrap_all(pairs, bob)
        recovered = [
            provider.decrypt_split_message(
                w.key_packet, w.data_packet, bob.private_key, bob_passphrase,
            ).decode()
            for w in wrapped
        ]
        assert recovered == [passphrase for _, passphrase in pairs]
