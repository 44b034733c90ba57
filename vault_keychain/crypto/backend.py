"""
Keychain Crypto Backend — Key generation, hybrid encryption and signatures.

Implements ``CryptoProvider`` on top of ``cryptography``:
- Keys: Ed25519 (signatures) + X25519 (encryption), one pair each per key.
- Private key lock: PBKDF2(passphrase) → AES-GCM over both private scalars.
- Messages: session key → AES-GCM data packet; session key wrapped with
  ephemeral X25519 + HKDF → AES-GCM key packet.
- Detached signatures: Ed25519 over the raw data, tagged with a key id.

Packet format: [tag 1B][length 4B uint32 BE][body]

Security Note:
    Never log plaintext, passphrases, private keys or ciphertext values.
    Nonces are random 96-bit; every message uses a fresh session key.
"""
import base64
import hashlib
import logging
import os
import secrets
import struct

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..conf import KeychainConfig
from ..exceptions import (
    ContentEncodingFailure,
    CryptoFailure,
    DecryptionFailure,
    FingerprintFailure,
    KeyGenerationFailure,
    MessageSplitFailure,
    PassphraseEncryptionFailure,
    SigningFailure,
)
from ..models import AsymmetricKey
from . import armor as _armor
from .provider import CryptoProvider

logger = logging.getLogger("keychain.crypto")

KEY_VERSION = 1
NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16
KEY_ID_SIZE = 8
RAW_KEY_SIZE = 32
SIGNATURE_SIZE = 64
GCM_TAG_SIZE = 16
MIN_KDF_ITERATIONS = 1000
MAX_KDF_ITERATIONS = 10_000_000

TAG_KEY_PACKET = 1
TAG_SIGNATURE = 2
TAG_DATA_PACKET = 18

_PACKET_HEADER = struct.Struct("!BI")
_PRIVATE_HEADER = struct.Struct("!BH")
_ITERATIONS = struct.Struct("!I")

_SESSION_KEY_CONTEXT = b"vault-keychain-session-key-v1"

_KEY_PACKET_BODY_SIZE = (
    KEY_ID_SIZE + RAW_KEY_SIZE + NONCE_SIZE + KEY_LENGTH + GCM_TAG_SIZE
)


def _raw_public(key) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _raw_private(key) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _to_bytes(data: bytes | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


# ---------------------------------------------------------------------------
# Packets
# ---------------------------------------------------------------------------

def pack_packet(tag: int, body: bytes) -> bytes:
    """Frame ``body`` as a packet."""
    return _PACKET_HEADER.pack(tag, len(body)) + body


def read_packets(data: bytes) -> list[tuple[int, bytes]]:
    """Parse a byte string into (tag, body) packets.

    Raises:
        ValueError: If the data is truncated or has trailing bytes.
    """
    packets = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < _PACKET_HEADER.size:
            raise ValueError("Truncated packet header")
        tag, length = _PACKET_HEADER.unpack_from(data, offset)
        offset += _PACKET_HEADER.size
        if len(data) - offset < length:
            raise ValueError("Truncated packet body")
        packets.append((tag, data[offset:offset + length]))
        offset += length
    return packets


def read_single_packet(data: bytes, tag: int) -> bytes:
    """Return the body of ``data`` if it is exactly one packet of ``tag``."""
    packets = read_packets(data)
    if len(packets) != 1 or packets[0][0] != tag:
        raise ValueError(f"Expected a single packet with tag {tag}")
    return packets[0][1]


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

class _PublicMaterial:
    """Parsed public key bytes: [version 1B][ed25519 32B][x25519 32B][label]."""

    __slots__ = ("raw", "sign_public", "enc_public", "label")

    def __init__(self, raw: bytes):
        if len(raw) < 1 + 2 * RAW_KEY_SIZE or raw[0] != KEY_VERSION:
            raise ValueError("Unsupported public key format")
        self.raw = raw
        self.sign_public = raw[1:1 + RAW_KEY_SIZE]
        self.enc_public = raw[1 + RAW_KEY_SIZE:1 + 2 * RAW_KEY_SIZE]
        self.label = raw[1 + 2 * RAW_KEY_SIZE:].decode("utf-8")

    @property
    def digest(self) -> bytes:
        # the label is not part of the key identity
        return hashlib.sha256(self.raw[:1 + 2 * RAW_KEY_SIZE]).digest()

    @property
    def key_id(self) -> bytes:
        return self.digest[:KEY_ID_SIZE]

    @property
    def fingerprint(self) -> str:
        return self.digest.hex()


def _build_public(sign_public: bytes, enc_public: bytes, label: str) -> bytes:
    return bytes([KEY_VERSION]) + sign_public + enc_public + label.encode("utf-8")


def derive_lock_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
    """Derive the 32-byte key locking a private key export (PBKDF2-SHA256)."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def derive_wrapping_key(shared_secret: bytes, ephemeral_public: bytes, recipient_public: bytes) -> bytes:
    """Derive the key wrapping a session key from an X25519 shared secret.

    The salt binds both public values, so a key packet cannot be replayed
    against a different recipient.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=ephemeral_public + recipient_public,
        info=_SESSION_KEY_CONTEXT,
    )
    return hkdf.derive(shared_secret)


class _UnlockedKey:
    __slots__ = ("public", "signer", "decrypter")

    def __init__(self, public: _PublicMaterial, signer, decrypter):
        self.public = public
        self.signer = signer
        self.decrypter = decrypter


def _split_private_blob(blob: bytes) -> tuple[_PublicMaterial, bytes, int, bytes, bytes]:
    """Parse [version 1B][publen 2B][public][salt 16B][iterations 4B][nonce 12B][sealed]."""
    if len(blob) < _PRIVATE_HEADER.size:
        raise ValueError("Truncated private key")
    version, public_length = _PRIVATE_HEADER.unpack_from(blob, 0)
    if version != KEY_VERSION:
        raise ValueError("Unsupported private key format")
    offset = _PRIVATE_HEADER.size
    public = _PublicMaterial(blob[offset:offset + public_length])
    offset += public_length
    salt = blob[offset:offset + SALT_SIZE]
    offset += SALT_SIZE
    (iterations,) = _ITERATIONS.unpack_from(blob, offset)
    offset += _ITERATIONS.size
    nonce = blob[offset:offset + NONCE_SIZE]
    offset += NONCE_SIZE
    sealed = blob[offset:]
    if len(salt) != SALT_SIZE or len(nonce) != NONCE_SIZE or not sealed:
        raise ValueError("Truncated private key")
    if not MIN_KDF_ITERATIONS <= iterations <= MAX_KDF_ITERATIONS:
        raise ValueError("Private key iteration count out of range")
    return public, salt, iterations, nonce, sealed


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class CryptographyProvider(CryptoProvider):
    """``CryptoProvider`` backed by the ``cryptography`` package.

    Args:
        config: Keychain settings; loaded from the environment when omitted.
    """

    def __init__(self, config: KeychainConfig | None = None):
        self.config = config or KeychainConfig.from_env()

    # ------------------------------------------------------------------
    # Key handling helpers
    # ------------------------------------------------------------------

    def _public_material(self, key: str | AsymmetricKey) -> _PublicMaterial:
        if isinstance(key, AsymmetricKey):
            key = key.public_key
        kind = _armor.kind_of(key)
        try:
            if kind == _armor.PUBLIC_KEY:
                return _PublicMaterial(_armor.unarmor(key, _armor.PUBLIC_KEY))
            if kind == _armor.PRIVATE_KEY:
                blob = _armor.unarmor(key, _armor.PRIVATE_KEY)
                return _split_private_blob(blob)[0]
        except (ValueError, struct.error) as err:
            raise ContentEncodingFailure("Malformed key") from err
        raise ContentEncodingFailure(f"Armored {kind} is not a key")

    def _unlock(self, private_key: str, passphrase: str) -> _UnlockedKey:
        """Unlock an armored private key.

        Raises:
            ContentEncodingFailure: If the armor or blob is malformed.
            DecryptionFailure: If the passphrase is wrong or the blob was altered.
        """
        blob = _armor.unarmor(private_key, _armor.PRIVATE_KEY)
        try:
            public, salt, iterations, nonce, sealed = _split_private_blob(blob)
        except (ValueError, UnicodeDecodeError, struct.error) as err:
            raise ContentEncodingFailure("Malformed private key") from err
        lock_key = derive_lock_key(passphrase, salt, iterations)
        try:
            scalars = AESGCM(lock_key).decrypt(nonce, sealed, public.raw)
        except InvalidTag as err:
            raise DecryptionFailure("Passphrase does not unlock private key") from err
        if len(scalars) != 2 * RAW_KEY_SIZE:
            raise DecryptionFailure("Unexpected private key length")
        signer = ed25519.Ed25519PrivateKey.from_private_bytes(scalars[:RAW_KEY_SIZE])
        decrypter = x25519.X25519PrivateKey.from_private_bytes(scalars[RAW_KEY_SIZE:])
        return _UnlockedKey(public, signer, decrypter)

    def _random_passphrase(self) -> str:
        return base64.b64encode(
            secrets.token_bytes(self.config.passphrase_bytes)
        ).decode("ascii")

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def generate_key_pair(self, label: str) -> tuple[AsymmetricKey, str]:
        try:
            signer = ed25519.Ed25519PrivateKey.generate()
            decrypter = x25519.X25519PrivateKey.generate()
            public_raw = _build_public(
                _raw_public(signer.public_key()),
                _raw_public(decrypter.public_key()),
                label,
            )
            public = _PublicMaterial(public_raw)
            passphrase = self._random_passphrase()
            salt = os.urandom(SALT_SIZE)
            iterations = self.config.kdf_iterations
            lock_key = derive_lock_key(passphrase, salt, iterations)
            nonce = os.urandom(NONCE_SIZE)
            sealed = AESGCM(lock_key).encrypt(
                nonce, _raw_private(signer) + _raw_private(decrypter), public_raw,
            )
        except (ValueError, TypeError) as err:
            raise KeyGenerationFailure(
                f"Could not generate key {label!r}", artifact=label,
            ) from err
        blob = (
            _PRIVATE_HEADER.pack(KEY_VERSION, len(public_raw))
            + public_raw
            + salt
            + _ITERATIONS.pack(iterations)
            + nonce
            + sealed
        )
        key = AsymmetricKey(
            label=label,
            public_key=_armor.armor(public_raw, _armor.PUBLIC_KEY),
            private_key=_armor.armor(blob, _armor.PRIVATE_KEY),
            fingerprint=public.fingerprint,
        )
        logger.debug(
            "Generated key label=%s fingerprint=%s", label, public.fingerprint[:16],
        )
        return key, passphrase

    def encrypt_to_public_key(self, plaintext: bytes | str, public_key: str) -> str:
        recipient = self._public_material(public_key)
        try:
            session_key = AESGCM.generate_key(bit_length=256)
            ephemeral = x25519.X25519PrivateKey.generate()
            ephemeral_public = _raw_public(ephemeral.public_key())
            shared = ephemeral.exchange(
                x25519.X25519PublicKey.from_public_bytes(recipient.enc_public)
            )
            wrapping_key = derive_wrapping_key(
                shared, ephemeral_public, recipient.enc_public,
            )
            key_nonce = os.urandom(NONCE_SIZE)
            wrapped = AESGCM(wrapping_key).encrypt(
                key_nonce, session_key, recipient.key_id,
            )
            data_nonce = os.urandom(NONCE_SIZE)
            payload = AESGCM(session_key).encrypt(
                data_nonce, _to_bytes(plaintext), None,
            )
        except (ValueError, TypeError) as err:
            raise PassphraseEncryptionFailure(
                "Encryption to public key failed"
            ) from err
        key_packet = pack_packet(
            TAG_KEY_PACKET,
            recipient.key_id + ephemeral_public + key_nonce + wrapped,
        )
        data_packet = pack_packet(TAG_DATA_PACKET, data_nonce + payload)
        return _armor.armor(key_packet + data_packet, _armor.MESSAGE)

    def split_message(self, message: str) -> tuple[bytes, bytes]:
        try:
            raw = _armor.unarmor(message, _armor.MESSAGE)
            packets = read_packets(raw)
        except (ContentEncodingFailure, ValueError, struct.error) as err:
            raise MessageSplitFailure("Could not split message") from err
        tags = [tag for tag, _ in packets]
        if tags != [TAG_KEY_PACKET, TAG_DATA_PACKET]:
            raise MessageSplitFailure(
                "Message must hold exactly one key packet and one data packet"
            )
        return (
            pack_packet(TAG_KEY_PACKET, packets[0][1]),
            pack_packet(TAG_DATA_PACKET, packets[1][1]),
        )

    def fingerprint(self, key: str | AsymmetricKey) -> str:
        try:
            return self._public_material(key).fingerprint
        except (CryptoFailure, ValueError, UnicodeDecodeError, struct.error) as err:
            raise FingerprintFailure("Could not compute key fingerprint") from err

    def sign_detached(self, data: bytes | str, private_key: str, passphrase: str) -> str:
        try:
            unlocked = self._unlock(private_key, passphrase)
        except CryptoFailure as err:
            raise SigningFailure("Could not unlock signer key") from err
        signature = unlocked.signer.sign(_to_bytes(data))
        packet = pack_packet(TAG_SIGNATURE, unlocked.public.key_id + signature)
        return _armor.armor(packet, _armor.SIGNATURE)

    def verify_detached(self, signature: str, data: bytes | str, public_key: str) -> bool:
        raw = _armor.unarmor(signature, _armor.SIGNATURE)
        signer = self._public_material(public_key)
        try:
            body = read_single_packet(raw, TAG_SIGNATURE)
        except (ValueError, struct.error):
            return False
        if len(body) != KEY_ID_SIZE + SIGNATURE_SIZE:
            return False
        if not secrets.compare_digest(body[:KEY_ID_SIZE], signer.key_id):
            return False
        verifier = ed25519.Ed25519PublicKey.from_public_bytes(signer.sign_public)
        try:
            verifier.verify(body[KEY_ID_SIZE:], _to_bytes(data))
        except InvalidSignature:
            return False
        return True

    def unarmor_to_base64(self, armored: str) -> str:
        return _armor.unarmor_to_base64(armored)

    def armor(self, raw: bytes, kind: str) -> str:
        return _armor.armor(raw, kind)

    # ------------------------------------------------------------------
    # Decryption
    # ------------------------------------------------------------------

    def decrypt_session_key(
        self, key_packet: bytes, private_key: str, passphrase: str,
    ) -> bytes:
        unlocked = self._unlock(private_key, passphrase)
        try:
            body = read_single_packet(key_packet, TAG_KEY_PACKET)
        except (ValueError, struct.error) as err:
            raise DecryptionFailure("Malformed key packet") from err
        if len(body) != _KEY_PACKET_BODY_SIZE:
            raise DecryptionFailure("Malformed key packet")
        key_id = body[:KEY_ID_SIZE]
        if not secrets.compare_digest(key_id, unlocked.public.key_id):
            raise DecryptionFailure("Key packet is not addressed to this key")
        offset = KEY_ID_SIZE
        ephemeral_public = body[offset:offset + RAW_KEY_SIZE]
        offset += RAW_KEY_SIZE
        nonce = body[offset:offset + NONCE_SIZE]
        wrapped = body[offset + NONCE_SIZE:]
        try:
            shared = unlocked.decrypter.exchange(
                x25519.X25519PublicKey.from_public_bytes(ephemeral_public)
            )
            wrapping_key = derive_wrapping_key(
                shared, ephemeral_public, unlocked.public.enc_public,
            )
            return AESGCM(wrapping_key).decrypt(nonce, wrapped, key_id)
        except (InvalidTag, ValueError) as err:
            raise DecryptionFailure("Could not decrypt session key") from err

    def decrypt_data_packet(self, data_packet: bytes, session_key: bytes) -> bytes:
        try:
            body = read_single_packet(data_packet, TAG_DATA_PACKET)
        except (ValueError, struct.error) as err:
            raise DecryptionFailure("Malformed data packet") from err
        if len(body) < NONCE_SIZE + GCM_TAG_SIZE:
            raise DecryptionFailure("Malformed data packet")
        try:
            return AESGCM(session_key).decrypt(
                body[:NONCE_SIZE], body[NONCE_SIZE:], None,
            )
        except (InvalidTag, ValueError) as err:
            raise DecryptionFailure("Could not decrypt data packet") from err

    def decrypt_message(self, message: str, private_key: str, passphrase: str) -> bytes:
        try:
            key_packet, data_packet = self.split_message(message)
        except MessageSplitFailure as err:
            raise DecryptionFailure("Malformed message") from err
        return self.decrypt_split_message(
            key_packet, data_packet, private_key, passphrase,
        )

    def public_key(self, private_key: str) -> str:
        blob = _armor.unarmor(private_key, _armor.PRIVATE_KEY)
        try:
            public = _split_private_blob(blob)[0]
        except (ValueError, UnicodeDecodeError, struct.error) as err:
            raise ContentEncodingFailure("Malformed private key") from err
        return _armor.armor(public.raw, _armor.PUBLIC_KEY)

    def check_passphrase(self, private_key: str, passphrase: str) -> bool:
        try:
            self._unlock(private_key, passphrase)
        except DecryptionFailure:
            return False
        return True
