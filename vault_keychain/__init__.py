"""
Vault Keychain
Key hierarchy and secure sharing for end-to-end encrypted vaults.

A vault is protected by three generated keys chained to the creator's
address key:
1. SigningKey — certified by the address key (the acceptance signature)
2. VaultKey   — certified by the signing key, encrypts vault content
3. ItemKey    — certified by the signing key, unwrapped by the vault key

Sharing re-wraps the existing vault/item key passphrases to each
recipient; keys and their signatures are never re-issued.

Usage:
    from vault_keychain import build_create_vault_request, VaultContent
    request = build_create_vault_request(
        address_id, address_key, address_passphrase, VaultContent(name="Personal")
    )
"""

from .version import __version__
from .conf import KeychainConfig
from .crypto import CryptoProvider, CryptographyProvider, get_provider
from .exceptions import (
    CryptoFailure,
    CryptoFailureReason,
    KeyGenerationFailure,
    PassphraseEncryptionFailure,
    MessageSplitFailure,
    FingerprintFailure,
    SigningFailure,
    SignatureVerificationFailure,
    ContentEncodingFailure,
    DecryptionFailure,
    SharingFailure,
    SharingFailureReason,
    IncompleteSharingInformation,
)
from .models import (
    AsymmetricKey,
    CreateVaultRequest,
    ExistingUserInvite,
    KeyRole,
    NewUserInvite,
    OpenedVault,
    ShareRole,
    ShareTarget,
    SharingInfos,
    TargetType,
    VaultContent,
    VaultHierarchy,
    WrappedKeyNode,
    WrappedPassphrase,
)
from .vault import (
    KeyWrapper,
    VaultKeyHierarchyBuilder,
    VaultOpener,
    build_create_vault_request,
    open_vault,
)
from .sharing import ShareInviteAggregator, ShareKeyRewrapper, prepare_invites

__all__ = [
    "__version__",
    "KeychainConfig",
    "CryptoProvider",
    "CryptographyProvider",
    "get_provider",
    "CryptoFailure",
    "CryptoFailureReason",
    "KeyGenerationFailure",
    "PassphraseEncryptionFailure",
    "MessageSplitFailure",
    "FingerprintFailure",
    "SigningFailure",
    "SignatureVerificationFailure",
    "ContentEncodingFailure",
    "DecryptionFailure",
    "SharingFailure",
    "SharingFailureReason",
    "IncompleteSharingInformation",
    "AsymmetricKey",
    "CreateVaultRequest",
    "ExistingUserInvite",
    "KeyRole",
    "NewUserInvite",
    "OpenedVault",
    "ShareRole",
    "ShareTarget",
    "SharingInfos",
    "TargetType",
    "VaultContent",
    "VaultHierarchy",
    "WrappedKeyNode",
    "WrappedPassphrase",
    "KeyWrapper",
    "VaultKeyHierarchyBuilder",
    "VaultOpener",
    "build_create_vault_request",
    "open_vault",
    "ShareInviteAggregator",
    "ShareKeyRewrapper",
    "prepare_invites",
]
