"""
Base class for cryptographic providers.
Every backend the key hierarchy runs on implements this interface.
"""
from abc import ABC, abstractmethod

from ..models import AsymmetricKey


class CryptoProvider(ABC):
    """Capability interface used by the key hierarchy.

    Keys, messages and signatures are exchanged as armored text; key and
    data packets as raw bytes. Every method raises a ``CryptoFailure``
    subclass on error.
    """

    @abstractmethod
    def generate_key_pair(self, label: str) -> tuple[AsymmetricKey, str]:
        """
        Generate a keypair locked with a fresh random passphrase.

        Args:
            label: Identity label stored with the public key.

        Returns:
            The new key and the passphrase unlocking its private half.
        """

    @abstractmethod
    def encrypt_to_public_key(self, plaintext: bytes | str, public_key: str) -> str:
        """Encrypt ``plaintext`` so only the holder of ``public_key`` can read it."""

    @abstractmethod
    def split_message(self, message: str) -> tuple[bytes, bytes]:
        """Split an armored message into its (key packet, data packet)."""

    @abstractmethod
    def fingerprint(self, key: str | AsymmetricKey) -> str:
        """Return the fingerprint of an armored public or private key."""

    @abstractmethod
    def sign_detached(self, data: bytes | str, private_key: str, passphrase: str) -> str:
        """Return an armored detached signature over ``data``."""

    @abstractmethod
    def verify_detached(self, signature: str, data: bytes | str, public_key: str) -> bool:
        """Check a detached signature. Returns False on any mismatch."""

    @abstractmethod
    def unarmor_to_base64(self, armored: str) -> str:
        """Strip armor and return the body as base64."""

    @abstractmethod
    def armor(self, raw: bytes, kind: str) -> str:
        """Armor raw bytes as ``kind``."""

    @abstractmethod
    def decrypt_message(self, message: str, private_key: str, passphrase: str) -> bytes:
        """Decrypt an armored message with an unlocked private key."""

    @abstractmethod
    def decrypt_session_key(
        self, key_packet: bytes, private_key: str, passphrase: str,
    ) -> bytes:
        """Recover the session key carried by a key packet."""

    @abstractmethod
    def decrypt_data_packet(self, data_packet: bytes, session_key: bytes) -> bytes:
        """Decrypt a data packet with an already recovered session key."""

    @abstractmethod
    def public_key(self, private_key: str) -> str:
        """Return the armored public key embedded in an armored private key."""

    @abstractmethod
    def check_passphrase(self, private_key: str, passphrase: str) -> bool:
        """Return True if ``passphrase`` unlocks ``private_key``."""

    def decrypt_split_message(
        self,
        key_packet: bytes,
        data_packet: bytes,
        private_key: str,
        passphrase: str,
    ) -> bytes:
        """Decrypt a message that was split with ``split_message``."""
        session_key = self.decrypt_session_key(key_packet, private_key, passphrase)
        return self.decrypt_data_packet(data_packet, session_key)
