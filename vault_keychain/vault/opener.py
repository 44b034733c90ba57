"""
Vault Opener — Walks a vault hierarchy and verifies every link.

Used by the holder of the address key to trust a vault: each passphrase
is unwrapped with its designated parent, each fingerprint signature is
checked against its designated signer, and the content is only returned
once both content signatures check out.
"""
import base64
import binascii
import logging

from ..crypto import armor
from ..crypto.provider import CryptoProvider
from ..exceptions import (
    ContentEncodingFailure,
    CryptoFailure,
    DecryptionFailure,
    SignatureVerificationFailure,
)
from ..models import AsymmetricKey, CreateVaultRequest, KeyRole, OpenedVault, VaultContent

logger = logging.getLogger("keychain.vault")


def armored_content(request: CreateVaultRequest) -> str:
    """Re-armor the encrypted content exactly as it was self-signed."""
    return armor.armor_base64(request.content, armor.MESSAGE)


class VaultOpener:
    """Verifies and decrypts vaults built by ``VaultKeyHierarchyBuilder``.

    Args:
        provider: Cryptographic provider performing the primitives.
    """

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    def _unwrap(
        self,
        artifact: str,
        key_role: KeyRole,
        key_packet_b64: str,
        data_packet_b64: str,
        parent_private_key: str,
        parent_passphrase: str,
    ) -> str:
        try:
            key_packet = armor.decode_base64(key_packet_b64)
            data_packet = armor.decode_base64(data_packet_b64)
            passphrase = self.provider.decrypt_split_message(
                key_packet, data_packet, parent_private_key, parent_passphrase,
            )
            return passphrase.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionFailure(
                "Unwrapped passphrase is not text", artifact, key_role.value,
            ) from err
        except CryptoFailure as err:
            raise err.with_context(artifact=artifact, key_role=key_role.value)

    def _verify(
        self,
        artifact: str,
        key_role: KeyRole,
        signature: str,
        data: bytes | str,
        public_key: str,
    ) -> None:
        try:
            valid = self.provider.verify_detached(signature, data, public_key)
        except CryptoFailure as err:
            raise err.with_context(artifact=artifact, key_role=key_role.value)
        if not valid:
            logger.error(
                "Signature verification failed: artifact=%s role=%s",
                artifact, key_role.value,
            )
            raise SignatureVerificationFailure(
                "Signature does not verify", artifact, key_role.value,
            )

    def _check_unlocks(
        self,
        artifact: str,
        key_role: KeyRole,
        private_key: str,
        passphrase: str,
    ) -> None:
        try:
            unlocked = self.provider.check_passphrase(private_key, passphrase)
        except CryptoFailure as err:
            raise err.with_context(artifact=artifact, key_role=key_role.value)
        if not unlocked:
            logger.error(
                "Unwrapped passphrase does not unlock key: artifact=%s role=%s",
                artifact, key_role.value,
            )
            raise DecryptionFailure(
                "Passphrase does not unlock private key", artifact, key_role.value,
            )

    def _signature(self, artifact: str, key_role: KeyRole, value: str) -> str:
        try:
            return armor.armor_base64(value, armor.SIGNATURE)
        except CryptoFailure as err:
            raise err.with_context(artifact=artifact, key_role=key_role.value)

    def _decrypt_text(
        self,
        artifact: str,
        message_b64: str,
        vault_key: str,
        vault_passphrase: str,
    ) -> str:
        try:
            message = armor.armor_base64(message_b64, armor.MESSAGE)
            return self.provider.decrypt_message(
                message, vault_key, vault_passphrase,
            ).decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionFailure(
                "Decrypted value is not text", artifact, KeyRole.VAULT.value,
            ) from err
        except CryptoFailure as err:
            raise err.with_context(artifact=artifact, key_role=KeyRole.VAULT.value)

    def open(
        self,
        request: CreateVaultRequest,
        address_key: AsymmetricKey,
        address_passphrase: str,
    ) -> OpenedVault:
        """Verify the hierarchy of ``request`` and decrypt its content.

        Args:
            request: Vault as produced at creation time.
            address_key: Address key of the vault creator.
            address_passphrase: Passphrase of ``address_key``.

        Returns:
            The vault content and the unwrapped key passphrases.

        Raises:
            SignatureVerificationFailure: If any signature does not verify.
            DecryptionFailure: If any passphrase or content cannot be decrypted.
            ContentEncodingFailure: If a field is not valid base64/armor.
        """
        provider = self.provider
        signing_public = provider.public_key(request.signing_key)
        vault_public = provider.public_key(request.vault_key)

        # 1. signing key, anchored by the address key
        signing_passphrase = self._unwrap(
            "signing_key_passphrase", KeyRole.SIGNING,
            request.signing_key_passphrase_key_packet,
            request.signing_key_passphrase,
            address_key.private_key, address_passphrase,
        )
        self._check_unlocks(
            "signing_key", KeyRole.SIGNING, request.signing_key, signing_passphrase,
        )
        self._verify(
            "acceptance_signature", KeyRole.SIGNING,
            self._signature("acceptance_signature", KeyRole.SIGNING, request.acceptance_signature),
            provider.fingerprint(request.signing_key),
            address_key.public_key,
        )

        # 2. vault key, certified by the signing key
        self._verify(
            "vault_key_signature", KeyRole.VAULT,
            self._signature("vault_key_signature", KeyRole.VAULT, request.vault_key_signature),
            provider.fingerprint(request.vault_key),
            signing_public,
        )
        vault_passphrase = self._unwrap(
            "vault_key_passphrase", KeyRole.VAULT,
            request.key_packet, request.vault_key_passphrase,
            address_key.private_key, address_passphrase,
        )
        self._check_unlocks(
            "vault_key", KeyRole.VAULT, request.vault_key, vault_passphrase,
        )
        self._verify(
            "key_packet_signature", KeyRole.VAULT,
            self._signature("key_packet_signature", KeyRole.VAULT, request.key_packet_signature),
            armor.decode_base64(request.key_packet),
            vault_public,
        )

        # 3. item key, certified by the signing key, unwrapped by the vault key
        self._verify(
            "item_key_signature", KeyRole.ITEM,
            self._signature("item_key_signature", KeyRole.ITEM, request.item_key_signature),
            provider.fingerprint(request.item_key),
            signing_public,
        )
        item_passphrase = self._unwrap(
            "item_key_passphrase", KeyRole.ITEM,
            request.item_key_passphrase_key_packet, request.item_key_passphrase,
            request.vault_key, vault_passphrase,
        )
        self._check_unlocks(
            "item_key", KeyRole.ITEM, request.item_key, item_passphrase,
        )

        # 4. content and its two signatures
        plain_envelope = self._decrypt_text(
            "content", request.content, request.vault_key, vault_passphrase,
        )
        creator_signature = self._decrypt_text(
            "content_encrypted_address_signature",
            request.content_encrypted_address_signature,
            request.vault_key, vault_passphrase,
        )
        self._verify(
            "content_address_signature", KeyRole.ADDRESS,
            creator_signature, plain_envelope, address_key.public_key,
        )
        self_signature = self._decrypt_text(
            "content_encrypted_vault_signature",
            request.content_encrypted_vault_signature,
            request.vault_key, vault_passphrase,
        )
        self._verify(
            "content_vault_signature", KeyRole.VAULT,
            self_signature,
            armored_content(request),
            vault_public,
        )

        try:
            content = VaultContent.parse(base64.b64decode(plain_envelope, validate=True))
        except (binascii.Error, ValueError) as err:
            raise ContentEncodingFailure(
                "Vault content could not be decoded", "content", KeyRole.VAULT.value,
            ) from err

        logger.debug(
            "Opened vault for address_key=%s", address_key.fingerprint[:16],
        )
        return OpenedVault(
            content=content,
            signing_passphrase=signing_passphrase,
            vault_passphrase=vault_passphrase,
            item_passphrase=item_passphrase,
        )


def open_vault(
    request: CreateVaultRequest,
    address_key: AsymmetricKey,
    address_passphrase: str,
    provider: CryptoProvider,
) -> OpenedVault:
    """Verify and decrypt a vault with the creator's address key."""
    return VaultOpener(provider).open(request, address_key, address_passphrase)
