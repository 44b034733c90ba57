"""
Keychain Models — Immutable value types exchanged by the key hierarchy.

Binary artifacts are kept as raw bytes internally and exposed as base64
text only at the request boundary. Passphrases are carried as
``SecretStr`` so they never show up in a repr or a log line.
"""
import base64
from enum import Enum
from typing import Optional, Union

import orjson
from pydantic import BaseModel, Field, SecretStr

from .conf import CONTENT_FORMAT_VERSION


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class KeyRole(str, Enum):
    """Position of a key inside the vault hierarchy."""
    ADDRESS = "address"
    SIGNING = "signing"
    VAULT = "vault"
    ITEM = "item"


class AsymmetricKey(BaseModel):
    """A keypair with its armored exports.

    ``private_key`` is locked with the key's passphrase and embeds the
    public half, so it is safe to hand to persistence as-is.
    """

    label: str
    public_key: str
    private_key: str = Field(repr=False)
    fingerprint: str

    model_config = {"frozen": True}


class WrappedPassphrase(BaseModel):
    """A passphrase encrypted to a parent key, split in two packets."""

    key_packet: bytes
    data_packet: bytes

    model_config = {"frozen": True}

    @property
    def key_packet_b64(self) -> str:
        return b64encode(self.key_packet)

    @property
    def data_packet_b64(self) -> str:
        return b64encode(self.data_packet)


class WrappedKeyNode(BaseModel):
    """One authenticated node of the hierarchy.

    Holds the freshly generated key, its plaintext passphrase (handed to
    the caller, never retained), the passphrase wrapped for the parent key
    and the signer's signature over the key fingerprint.
    """

    role: KeyRole
    key: AsymmetricKey
    passphrase: SecretStr
    wrapped_passphrase: WrappedPassphrase
    fingerprint_signature: str

    model_config = {"frozen": True}


class VaultContent(BaseModel):
    """Vault metadata bound into the hierarchy."""

    name: str
    description: str = ""
    icon: Optional[str] = None
    color: Optional[str] = None

    model_config = {"frozen": True}

    def serialize(self) -> bytes:
        """Deterministic byte form of the vault metadata."""
        return orjson.dumps(self.model_dump(), option=orjson.OPT_SORT_KEYS)

    @classmethod
    def parse(cls, data: bytes) -> "VaultContent":
        return cls.model_validate(orjson.loads(data))


class CreateVaultRequest(BaseModel):
    """Request body creating a vault, every binary field base64 encoded.

    Field aliases are the wire names expected by the vault endpoint.
    """

    address_id: str = Field(alias="AddressID")
    content: str = Field(alias="Content")
    content_format_version: int = Field(
        default=CONTENT_FORMAT_VERSION, alias="ContentFormatVersion"
    )
    content_encrypted_address_signature: str = Field(
        alias="ContentEncryptedAddressSignature"
    )
    content_encrypted_vault_signature: str = Field(
        alias="ContentEncryptedVaultSignature"
    )
    # Armored vault key, locked with the passphrase in vault_key_passphrase
    vault_key: str = Field(alias="VaultKey")
    vault_key_passphrase: str = Field(alias="VaultKeyPassphrase")
    vault_key_signature: str = Field(alias="VaultKeySignature")
    key_packet: str = Field(alias="KeyPacket")
    key_packet_signature: str = Field(alias="KeyPacketSignature")
    signing_key: str = Field(alias="SigningKey")
    signing_key_passphrase: str = Field(alias="SigningKeyPassphrase")
    signing_key_passphrase_key_packet: str = Field(
        alias="SigningKeyPassphraseKeyPacket"
    )
    acceptance_signature: str = Field(alias="AcceptanceSignature")
    item_key: str = Field(alias="ItemKey")
    item_key_passphrase: str = Field(alias="ItemKeyPassphrase")
    item_key_passphrase_key_packet: str = Field(alias="ItemKeyPassphraseKeyPacket")
    item_key_signature: str = Field(alias="ItemKeySignature")

    model_config = {"frozen": True, "populate_by_name": True}

    def to_payload(self) -> dict:
        """Return the request body keyed by wire names."""
        return self.model_dump(by_alias=True)

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_payload())


class VaultHierarchy(BaseModel):
    """A create-vault request together with the nodes it was built from."""

    request: CreateVaultRequest
    signing: WrappedKeyNode
    vault: WrappedKeyNode
    item: WrappedKeyNode

    model_config = {"frozen": True}


class OpenedVault(BaseModel):
    """Result of walking and verifying a vault hierarchy."""

    content: VaultContent
    signing_passphrase: SecretStr
    vault_passphrase: SecretStr
    item_passphrase: SecretStr

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

class ShareRole(str, Enum):
    ADMIN = "1"
    WRITE = "2"
    READ = "3"


class TargetType(int, Enum):
    VAULT = 1
    ITEM = 2


class ShareTarget(BaseModel):
    """What is being shared: a whole vault, or one item inside it."""

    target_type: TargetType
    vault_id: str
    item_id: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def vault(cls, vault_id: str) -> "ShareTarget":
        return cls(target_type=TargetType.VAULT, vault_id=vault_id)

    @classmethod
    def item(cls, vault_id: str, item_id: str) -> "ShareTarget":
        return cls(target_type=TargetType.ITEM, vault_id=vault_id, item_id=item_id)


class SharingInfos(BaseModel):
    """One recipient's invite intent.

    ``public_keys`` is None while the recipient's keys are unresolved or
    when the recipient has no account yet.
    """

    target: ShareTarget
    email: str
    role: ShareRole
    public_keys: Optional[list[str]] = None
    item_count: Optional[int] = None
    expire_time: Optional[int] = None

    model_config = {"frozen": True}


class ExistingUserInvite(BaseModel):
    """Invite for a recipient with resolved public keys."""

    email: str
    role: ShareRole
    target: ShareTarget
    keys: list[WrappedPassphrase]
    expire_time: Optional[int] = None

    model_config = {"frozen": True}


class NewUserInvite(BaseModel):
    """Invite for an email without keys, vouched for by the inviter."""

    email: str
    role: ShareRole
    target: ShareTarget
    signature: str
    expire_time: Optional[int] = None

    model_config = {"frozen": True}


Invite = Union[ExistingUserInvite, NewUserInvite]
