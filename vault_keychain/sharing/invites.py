"""
Share Invites — Turns sharing intent into per-recipient invite payloads.

Recipients with resolved public keys get the share keys re-wrapped to
their first key. Recipients without keys (no account yet) get a
signature by the inviter's address key over their email and the first
share key fingerprint; the keys are sent once the invite is promoted.
"""
import logging
from collections.abc import Sequence

from ..crypto.provider import CryptoProvider
from ..exceptions import (
    CryptoFailure,
    SharingFailure,
    SharingFailureReason,
)
from ..models import (
    AsymmetricKey,
    ExistingUserInvite,
    Invite,
    KeyRole,
    NewUserInvite,
    SharingInfos,
)
from .rewrap import ShareKeyRewrapper

logger = logging.getLogger("keychain.sharing")


def new_user_signature_payload(email: str, fingerprint: str) -> bytes:
    """Bytes vouched for by the inviter of a recipient without keys."""
    return f"{email}|{fingerprint}".encode("utf-8")


def prepare_invites(
    infos: Sequence[SharingInfos],
    share_keys: Sequence[tuple[AsymmetricKey, str]],
    address_key: AsymmetricKey,
    address_passphrase: str,
    provider: CryptoProvider,
) -> list[Invite]:
    """Build one invite payload per ``SharingInfos``.

    Args:
        infos: Output of ``ShareInviteAggregator.build_sharing_infos()``.
        share_keys: (key, passphrase) pairs being shared, the vault key
            first, as decrypted by the sharing user.
        address_key: Inviter's address key.
        address_passphrase: Passphrase of ``address_key``.
        provider: Cryptographic provider performing the primitives.

    Returns:
        Invites in the order of ``infos``.

    Raises:
        SharingFailure: If ``infos`` or ``share_keys`` is empty.
        CryptoFailure: If re-wrapping or signing fails.
    """
    if not infos:
        raise SharingFailure(
            SharingFailureReason.INCOMPLETE_INFORMATION, "No recipients to invite",
        )
    if not share_keys:
        raise SharingFailure(
            SharingFailureReason.MISSING_SHARE_KEYS, "No keys to share",
        )
    rewrapper = ShareKeyRewrapper(provider)
    primary_fingerprint = share_keys[0][0].fingerprint
    invites: list[Invite] = []
    for info in infos:
        if info.public_keys:
            invites.append(
                ExistingUserInvite(
                    email=info.email,
                    role=info.role,
                    target=info.target,
                    keys=rewrapper.rewrap_all(share_keys, info.public_keys[0]),
                    expire_time=info.expire_time,
                )
            )
            continue
        try:
            signature = provider.sign_detached(
                new_user_signature_payload(info.email, primary_fingerprint),
                address_key.private_key,
                address_passphrase,
            )
            encoded = provider.unarmor_to_base64(signature)
        except CryptoFailure as err:
            raise err.with_context(
                artifact="new_user_invite_signature", key_role=KeyRole.ADDRESS.value,
            )
        invites.append(
            NewUserInvite(
                email=info.email,
                role=info.role,
                target=info.target,
                signature=encoded,
                expire_time=info.expire_time,
            )
        )
    logger.info(
        "Prepared %d invite(s): %d existing, %d new user",
        len(invites),
        sum(isinstance(invite, ExistingUserInvite) for invite in invites),
        sum(isinstance(invite, NewUserInvite) for invite in invites),
    )
    return invites
