"""
Tests for the cryptography-backed provider and the armor codec.

Tests cover:
- Key generation, fingerprints and passphrase locking
- Hybrid encryption, message splitting and packet tampering
- Detached signatures
- Armor parsing errors
"""
import pytest

from vault_keychain.crypto import armor
from vault_keychain.crypto.backend import (
    TAG_DATA_PACKET,
    TAG_KEY_PACKET,
    pack_packet,
    read_packets,
)
from vault_keychain.exceptions import (
    ContentEncodingFailure,
    CryptoFailure,
    CryptoFailureReason,
    DecryptionFailure,
    FingerprintFailure,
    MessageSplitFailure,
    PassphraseEncryptionFailure,
    SigningFailure,
)


def flip(data: bytes, index: int) -> bytes:
    return data[:index] + bytes([data[index] ^ 0x01]) + data[index + 1:]


@pytest.fixture(scope="module")
def key(provider):
    return provider.generate_key_pair("test-key")


# --- Armor ---

class TestArmor:

    def test_armor_is_deterministic(self):
        raw = bytes(range(200))
        assert armor.armor(raw, armor.MESSAGE) == armor.armor(raw, armor.MESSAGE)

    def test_lines_are_wrapped(self):
        text = armor.armor(bytes(200), armor.MESSAGE)
        body = text.splitlines()[1:-1]
        assert all(len(line) <= 64 for line in body)
        assert text.startswith("-----BEGIN VAULT MESSAGE-----\n")
        assert text.endswith("-----END VAULT MESSAGE-----\n")

    def test_unarmor_recovers_bytes(self):
        raw = b"\x00\x01vault\xff"
        assert armor.unarmor(armor.armor(raw, armor.SIGNATURE)) == raw
        assert armor.kind_of(armor.armor(raw, armor.SIGNATURE)) == armor.SIGNATURE

    def test_unarmor_accepts_crlf(self):
        text = armor.armor(b"data", armor.MESSAGE).replace("\n", "\r\n")
        assert armor.unarmor(text, armor.MESSAGE) == b"data"

    def test_base64_bridge(self):
        text = armor.armor(b"payload", armor.MESSAGE)
        assert armor.armor_base64(armor.unarmor_to_base64(text), armor.MESSAGE) == text

    def test_wrong_kind(self):
        text = armor.armor(b"data", armor.MESSAGE)
        with pytest.raises(ContentEncodingFailure, match="Expected armored"):
            armor.unarmor(text, armor.SIGNATURE)

    def test_unknown_kind(self):
        with pytest.raises(ContentEncodingFailure):
            armor.armor(b"data", "SECRET")

    @pytest.mark.parametrize("text", ["", "not armored", b"bytes"])
    def test_malformed_block(self, text):
        with pytest.raises(ContentEncodingFailure):
            armor.unarmor(text)

    def test_invalid_transport_base64(self):
        with pytest.raises(ContentEncodingFailure):
            armor.decode_base64("***")


# --- Packets ---

class TestPackets:

    def test_read_packets(self):
        data = pack_packet(TAG_KEY_PACKET, b"abc") + pack_packet(TAG_DATA_PACKET, b"")
        assert read_packets(data) == [(TAG_KEY_PACKET, b"abc"), (TAG_DATA_PACKET, b"")]

    @pytest.mark.parametrize("data", [b"\x01\x00", b"\x01\x00\x00\x00\x05abc"])
    def test_truncated(self, data):
        with pytest.raises(ValueError, match="Truncated"):
            read_packets(data)


# --- Keys ---

class TestKeyGeneration:

    def test_generated_key(self, provider, key):
        asymmetric, passphrase = key
        assert asymmetric.label == "test-key"
        assert armor.kind_of(asymmetric.public_key) == armor.PUBLIC_KEY
        assert armor.kind_of(asymmetric.private_key) == armor.PRIVATE_KEY
        assert len(asymmetric.fingerprint) == 64
        assert passphrase

    def test_private_key_not_in_repr(self, key):
        asymmetric, _ = key
        assert "private_key" not in repr(asymmetric)

    def test_fresh_passphrases(self, provider):
        _, first = provider.generate_key_pair("a")
        _, second = provider.generate_key_pair("a")
        assert first != second

    def test_fingerprint_is_stable(self, provider, key):
        asymmetric, _ = key
        assert provider.fingerprint(asymmetric) == asymmetric.fingerprint
        assert provider.fingerprint(asymmetric.public_key) == asymmetric.fingerprint
        assert provider.fingerprint(asymmetric.private_key) == asymmetric.fingerprint

    def test_fingerprint_of_garbage(self, provider):
        with pytest.raises(FingerprintFailure):
            provider.fingerprint("garbage")

    def test_fingerprint_of_message(self, provider, key):
        message = provider.encrypt_to_public_key(b"x", key[0].public_key)
        with pytest.raises(FingerprintFailure):
            provider.fingerprint(message)

    def test_public_key_from_private(self, provider, key):
        asymmetric, _ = key
        assert provider.public_key(asymmetric.private_key) == asymmetric.public_key

    def test_check_passphrase(self, provider, key):
        asymmetric, passphrase = key
        assert provider.check_passphrase(asymmetric.private_key, passphrase) is True
        assert provider.check_passphrase(asymmetric.private_key, "wrong") is False

    def test_tampered_private_key(self, provider, key):
        asymmetric, passphrase = key
        blob = armor.unarmor(asymmetric.private_key, armor.PRIVATE_KEY)
        # last byte belongs to the sealed scalars
        tampered = armor.armor(flip(blob, len(blob) - 1), armor.PRIVATE_KEY)
        with pytest.raises(DecryptionFailure):
            provider.decrypt_message(
                provider.encrypt_to_public_key(b"x", asymmetric.public_key),
                tampered, passphrase,
            )


# --- Encryption ---

class TestEncryption:

    def test_round_trip(self, provider, key):
        asymmetric, passphrase = key
        message = provider.encrypt_to_public_key("secret text", asymmetric.public_key)
        assert provider.decrypt_message(
            message, asymmetric.private_key, passphrase,
        ) == b"secret text"

    def test_split_and_decrypt(self, provider, key):
        asymmetric, passphrase = key
        message = provider.encrypt_to_public_key(b"\x00binary", asymmetric.public_key)
        key_packet, data_packet = provider.split_message(message)
        assert read_packets(key_packet)[0][0] == TAG_KEY_PACKET
        assert read_packets(data_packet)[0][0] == TAG_DATA_PACKET
        session_key = provider.decrypt_session_key(
            key_packet, asymmetric.private_key, passphrase,
        )
        assert provider.decrypt_data_packet(data_packet, session_key) == b"\x00binary"

    def test_wrong_recipient(self, provider, key):
        other, other_passphrase = provider.generate_key_pair("other")
        message = provider.encrypt_to_public_key(b"x", key[0].public_key)
        with pytest.raises(DecryptionFailure):
            provider.decrypt_message(message, other.private_key, other_passphrase)

    def test_wrong_passphrase(self, provider, key):
        message = provider.encrypt_to_public_key(b"x", key[0].public_key)
        with pytest.raises(DecryptionFailure):
            provider.decrypt_message(message, key[0].private_key, "wrong")

    @pytest.mark.parametrize("packet", ["key", "data"])
    def test_tampered_packet(self, provider, key, packet):
        asymmetric, passphrase = key
        message = provider.encrypt_to_public_key(b"payload", asymmetric.public_key)
        key_packet, data_packet = provider.split_message(message)
        if packet == "key":
            key_packet = flip(key_packet, len(key_packet) - 1)
        else:
            data_packet = flip(data_packet, len(data_packet) - 1)
        with pytest.raises(DecryptionFailure):
            provider.decrypt_split_message(
                key_packet, data_packet, asymmetric.private_key, passphrase,
            )

    def test_encrypt_to_non_key(self, provider):
        with pytest.raises(ContentEncodingFailure):
            provider.encrypt_to_public_key(b"x", "nope")

    def test_split_rejects_single_packet(self, provider):
        message = armor.armor(pack_packet(TAG_DATA_PACKET, b"abc"), armor.MESSAGE)
        with pytest.raises(MessageSplitFailure):
            provider.split_message(message)

    def test_split_rejects_non_message(self, provider, key):
        with pytest.raises(MessageSplitFailure):
            provider.split_message(key[0].public_key)


# --- Signatures ---

class TestSignatures:

    def test_sign_and_verify(self, provider, key):
        asymmetric, passphrase = key
        signature = provider.sign_detached("fingerprint", asymmetric.private_key, passphrase)
        assert armor.kind_of(signature) == armor.SIGNATURE
        assert provider.verify_detached(signature, "fingerprint", asymmetric.public_key)
        assert provider.verify_detached(signature, b"fingerprint", asymmetric.public_key)

    def test_other_data(self, provider, key):
        asymmetric, passphrase = key
        signature = provider.sign_detached(b"one", asymmetric.private_key, passphrase)
        assert not provider.verify_detached(signature, b"two", asymmetric.public_key)

    def test_other_signer(self, provider, key):
        other, _ = provider.generate_key_pair("other")
        asymmetric, passphrase = key
        signature = provider.sign_detached(b"one", asymmetric.private_key, passphrase)
        assert not provider.verify_detached(signature, b"one", other.public_key)

    def test_tampered_signature(self, provider, key):
        asymmetric, passphrase = key
        signature = provider.sign_detached(b"one", asymmetric.private_key, passphrase)
        raw = armor.unarmor(signature, armor.SIGNATURE)
        tampered = armor.armor(flip(raw, len(raw) - 1), armor.SIGNATURE)
        assert not provider.verify_detached(tampered, b"one", asymmetric.public_key)

    def test_sign_with_wrong_passphrase(self, provider, key):
        with pytest.raises(SigningFailure):
            provider.sign_detached(b"one", key[0].private_key, "wrong")

    def test_verify_rejects_bad_armor(self, provider, key):
        with pytest.raises(ContentEncodingFailure):
            provider.verify_detached("garbage", b"one", key[0].public_key)


class TestFailureContext:

    def test_with_context_only_fills_unset(self):
        err = PassphraseEncryptionFailure("boom", artifact="vault_key_passphrase")
        err.with_context(artifact="other", key_role="vault")
        assert err.artifact == "vault_key_passphrase"
        assert err.key_role == "vault"
        assert str(err) == "boom artifact=vault_key_passphrase key_role=vault"

    def test_base_failure_has_no_reason(self):
        err = CryptoFailure("boom")
        assert err.reason is None
        assert err.reason_value == "unspecified"
        assert SigningFailure("boom").reason is CryptoFailureReason.SIGNING
        assert SigningFailure("boom").reason_value == "signing"
