"""
Vault Key Hierarchy — Builds the request creating a brand-new vault.

Chain of trust:

    AddressKey ──signs──▶ SigningKey fingerprint   (acceptance signature)
    SigningKey ──signs──▶ VaultKey fingerprint
    SigningKey ──signs──▶ ItemKey fingerprint

Passphrase parents:

    AddressKey ──unwraps──▶ SigningKey, VaultKey
    VaultKey   ──unwraps──▶ ItemKey

The vault content is encrypted to the VaultKey and carries two
signatures, both encrypted to the VaultKey before they leave:
a VaultKey self-signature over the encrypted (armored) content and an
AddressKey signature over the plain content. The VaultKey also signs its
own passphrase key packet.

Nothing is persisted here; a failure at any step aborts the whole build.
"""
import base64
import logging

from ..conf import CONTENT_FORMAT_VERSION
from ..crypto import get_provider
from ..crypto.provider import CryptoProvider
from ..exceptions import CryptoFailure
from ..models import (
    AsymmetricKey,
    CreateVaultRequest,
    KeyRole,
    VaultContent,
    VaultHierarchy,
    WrappedKeyNode,
)
from .wrapper import KeyWrapper

logger = logging.getLogger("keychain.vault")

SIGNING_KEY_LABEL = "VaultSigningKey"
VAULT_KEY_LABEL = "VaultKey"
ITEM_KEY_LABEL = "ItemKey"


class VaultKeyHierarchyBuilder:
    """Orchestrates the signing → vault → item key chain for one vault.

    The builder keeps no state between calls; concurrent builds may share
    one instance.

    Args:
        provider: Cryptographic provider performing the primitives.
    """

    def __init__(self, provider: CryptoProvider, content_format_version: int = CONTENT_FORMAT_VERSION):
        self.provider = provider
        self.wrapper = KeyWrapper(provider)
        self.content_format_version = content_format_version

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _signing_node(self, address_key: AsymmetricKey, address_passphrase: str) -> WrappedKeyNode:
        # the acceptance signature: the only one made by the address key
        return self.wrapper.wrap(
            SIGNING_KEY_LABEL,
            parent_public_key=address_key,
            signer_key=address_key,
            signer_passphrase=address_passphrase,
            role=KeyRole.SIGNING,
        )

    def _vault_node(self, address_key: AsymmetricKey, signing: WrappedKeyNode) -> WrappedKeyNode:
        return self.wrapper.wrap(
            VAULT_KEY_LABEL,
            parent_public_key=address_key,
            signer_key=signing.key,
            signer_passphrase=signing.passphrase.get_secret_value(),
            role=KeyRole.VAULT,
        )

    def _item_node(self, vault: WrappedKeyNode, signing: WrappedKeyNode) -> WrappedKeyNode:
        # parent is the vault key so vault key holders can unlock items
        return self.wrapper.wrap(
            ITEM_KEY_LABEL,
            parent_public_key=vault.key,
            signer_key=signing.key,
            signer_passphrase=signing.passphrase.get_secret_value(),
            role=KeyRole.ITEM,
        )

    def _step(self, artifact: str, key_role: KeyRole, func, *args):
        """Run one provider call, tagging any failure with its artifact."""
        try:
            return func(*args)
        except CryptoFailure as err:
            logger.error(
                "Vault build step failed: artifact=%s role=%s reason=%s",
                artifact, key_role.value, err.reason_value,
            )
            raise err.with_context(artifact=artifact, key_role=key_role.value)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        address_id: str,
        address_key: AsymmetricKey,
        address_passphrase: str,
        content: VaultContent,
    ) -> VaultHierarchy:
        """Build the full hierarchy and its create-vault request.

        Args:
            address_id: Identifier of the creating address.
            address_key: Unlockable address key of the creator.
            address_passphrase: Passphrase of ``address_key``.
            content: Vault metadata to bind into the hierarchy.

        Returns:
            The request together with the generated nodes. The caller owns
            the generated passphrases and must store or discard them.

        Raises:
            CryptoFailure: The first failure, tagged with artifact and role.
        """
        provider = self.provider
        signing = self._signing_node(address_key, address_passphrase)
        vault = self._vault_node(address_key, signing)
        item = self._item_node(vault, signing)

        vault_passphrase = vault.passphrase.get_secret_value()

        plain_envelope = base64.b64encode(content.serialize()).decode("ascii")
        encrypted_envelope = self._step(
            "content", KeyRole.VAULT,
            provider.encrypt_to_public_key, plain_envelope, vault.key.public_key,
        )
        self_signature = self._step(
            "content_vault_signature", KeyRole.VAULT,
            provider.sign_detached,
            encrypted_envelope, vault.key.private_key, vault_passphrase,
        )
        packet_binding_signature = self._step(
            "key_packet_signature", KeyRole.VAULT,
            provider.sign_detached,
            vault.wrapped_passphrase.key_packet, vault.key.private_key, vault_passphrase,
        )
        creator_signature = self._step(
            "content_address_signature", KeyRole.ADDRESS,
            provider.sign_detached,
            plain_envelope, address_key.private_key, address_passphrase,
        )
        encrypted_creator_signature = self._step(
            "content_encrypted_address_signature", KeyRole.VAULT,
            provider.encrypt_to_public_key, creator_signature, vault.key.public_key,
        )
        encrypted_self_signature = self._step(
            "content_encrypted_vault_signature", KeyRole.VAULT,
            provider.encrypt_to_public_key, self_signature, vault.key.public_key,
        )

        def unarmored(artifact: str, key_role: KeyRole, text: str) -> str:
            return self._step(artifact, key_role, provider.unarmor_to_base64, text)

        request = CreateVaultRequest(
            address_id=address_id,
            content=unarmored("content", KeyRole.VAULT, encrypted_envelope),
            content_format_version=self.content_format_version,
            content_encrypted_address_signature=unarmored(
                "content_encrypted_address_signature", KeyRole.VAULT,
                encrypted_creator_signature,
            ),
            content_encrypted_vault_signature=unarmored(
                "content_encrypted_vault_signature", KeyRole.VAULT,
                encrypted_self_signature,
            ),
            vault_key=vault.key.private_key,
            vault_key_passphrase=vault.wrapped_passphrase.data_packet_b64,
            vault_key_signature=unarmored(
                "vault_key_signature", KeyRole.VAULT, vault.fingerprint_signature,
            ),
            key_packet=vault.wrapped_passphrase.key_packet_b64,
            key_packet_signature=unarmored(
                "key_packet_signature", KeyRole.VAULT, packet_binding_signature,
            ),
            signing_key=signing.key.private_key,
            signing_key_passphrase=signing.wrapped_passphrase.data_packet_b64,
            signing_key_passphrase_key_packet=signing.wrapped_passphrase.key_packet_b64,
            acceptance_signature=unarmored(
                "acceptance_signature", KeyRole.SIGNING, signing.fingerprint_signature,
            ),
            item_key=item.key.private_key,
            item_key_passphrase=item.wrapped_passphrase.data_packet_b64,
            item_key_passphrase_key_packet=item.wrapped_passphrase.key_packet_b64,
            item_key_signature=unarmored(
                "item_key_signature", KeyRole.ITEM, item.fingerprint_signature,
            ),
        )
        logger.info(
            "Built create-vault request for address=%s vault_key=%s",
            address_id, vault.key.fingerprint[:16],
        )
        return VaultHierarchy(request=request, signing=signing, vault=vault, item=item)


def build_create_vault_request(
    address_id: str,
    address_key: AsymmetricKey,
    address_passphrase: str,
    content: VaultContent,
    provider: CryptoProvider | None = None,
) -> CreateVaultRequest:
    """Build the request creating a new vault for ``address_id``.

    Uses a provider configured from the environment when none is given.
    Generated passphrases are discarded; use ``VaultKeyHierarchyBuilder``
    directly to keep them.
    """
    if provider is None:
        provider = get_provider()
    builder = VaultKeyHierarchyBuilder(provider)
    return builder.build(address_id, address_key, address_passphrase, content).request
