"""
Key Wrapper — Produces one authenticated node of the key hierarchy.

For a new key:
1. generate a keypair and a random passphrase,
2. encrypt the passphrase to the parent public key, split into packets,
3. sign the new key's fingerprint with the designated signer.

The operation is atomic: a failure at any step raises and no node is
returned.

Security Note:
    Never log passphrases or private keys. Only log roles, labels and
    fingerprint prefixes.
"""
import logging

from ..crypto.provider import CryptoProvider
from ..exceptions import CryptoFailure
from ..models import AsymmetricKey, KeyRole, WrappedKeyNode, WrappedPassphrase

logger = logging.getLogger("keychain.vault")


def public_of(key: AsymmetricKey | str) -> str:
    """Armored public key of ``key``."""
    if isinstance(key, AsymmetricKey):
        return key.public_key
    return key


def private_of(key: AsymmetricKey | str) -> str:
    """Armored (locked) private key of ``key``."""
    if isinstance(key, AsymmetricKey):
        return key.private_key
    return key


class KeyWrapper:
    """Generates, wraps and certifies hierarchy keys.

    Args:
        provider: Cryptographic provider performing the primitives.
    """

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    def wrap_passphrase(
        self,
        passphrase: str,
        recipient_public_key: AsymmetricKey | str,
    ) -> WrappedPassphrase:
        """Encrypt ``passphrase`` to a recipient and split the message.

        Args:
            passphrase: Plaintext passphrase of the key being wrapped.
            recipient_public_key: Key whose holder may unwrap the passphrase.

        Returns:
            The key packet / data packet pair.
        """
        message = self.provider.encrypt_to_public_key(
            passphrase, public_of(recipient_public_key),
        )
        key_packet, data_packet = self.provider.split_message(message)
        return WrappedPassphrase(key_packet=key_packet, data_packet=data_packet)

    def wrap(
        self,
        label: str,
        parent_public_key: AsymmetricKey | str,
        signer_key: AsymmetricKey | str,
        signer_passphrase: str,
        role: KeyRole,
    ) -> WrappedKeyNode:
        """Generate a key whose passphrase only ``parent_public_key`` can unwrap.

        Args:
            label: Identity label of the new key.
            parent_public_key: Designated parent of the new key's passphrase.
            signer_key: Key certifying the new key's fingerprint.
            signer_passphrase: Passphrase unlocking ``signer_key``.
            role: Position of the new key in the hierarchy.

        Returns:
            The new node; the caller owns its plaintext passphrase.

        Raises:
            CryptoFailure: With ``artifact`` and ``key_role`` set.
        """
        artifact = f"{role.value}_key"
        try:
            key, passphrase = self.provider.generate_key_pair(label)
            artifact = f"{role.value}_key_passphrase"
            wrapped = self.wrap_passphrase(passphrase, parent_public_key)
            artifact = f"{role.value}_key_fingerprint"
            fingerprint = self.provider.fingerprint(key)
            artifact = f"{role.value}_key_signature"
            signature = self.provider.sign_detached(
                fingerprint, private_of(signer_key), signer_passphrase,
            )
        except CryptoFailure as err:
            logger.error(
                "Key wrapping failed: role=%s artifact=%s reason=%s",
                role.value, artifact, err.reason_value,
            )
            raise err.with_context(artifact=artifact, key_role=role.value)
        logger.debug(
            "Wrapped key role=%s label=%s fingerprint=%s",
            role.value, label, fingerprint[:16],
        )
        return WrappedKeyNode(
            role=role,
            key=key,
            passphrase=passphrase,
            wrapped_passphrase=wrapped,
            fingerprint_signature=signature,
        )
