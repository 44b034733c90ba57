"""
Share Invite Aggregator — In-progress sharing intent for one flow.

The aggregator is owned by a single sharing flow, passed by reference
through it and reset when the flow completes or is abandoned. It is not
thread-safe and does no cryptography.
"""
import logging
from collections.abc import Mapping
from typing import Optional

from ..exceptions import IncompleteSharingInformation
from ..models import SharingInfos, ShareRole, ShareTarget

logger = logging.getLogger("keychain.sharing")


class ShareInviteAggregator:
    """Accumulates target, recipients, keys and roles of a share.

    Setters are last-write-wins and never validate; validation (e.g. a
    role allowed for the target type) belongs to the calling flow.
    """

    def __init__(self) -> None:
        self._target: Optional[ShareTarget] = None
        self._item_count: Optional[int] = None
        self._expire_time: Optional[int] = None
        self._keys: dict[str, Optional[list[str]]] = {}
        self._roles: dict[str, ShareRole] = {}

    def __repr__(self) -> str:
        return (
            f'<ShareInviteAggregator [target:{self._target!r}, '
            f'item_count:{self._item_count}] recipients={list(self._keys)}>'
        )

    # --- Properties ---

    @property
    def target(self) -> Optional[ShareTarget]:
        return self._target

    @property
    def item_count(self) -> Optional[int]:
        return self._item_count

    @property
    def expire_time(self) -> Optional[int]:
        return self._expire_time

    @property
    def recipient_keys(self) -> dict[str, Optional[list[str]]]:
        return dict(self._keys)

    @property
    def recipient_roles(self) -> dict[str, ShareRole]:
        return dict(self._roles)

    @property
    def is_empty(self) -> bool:
        return (
            self._target is None
            and self._item_count is None
            and self._expire_time is None
            and not self._keys
            and not self._roles
        )

    # --- Setters ---

    def set_target(self, target: ShareTarget, item_count: Optional[int] = None) -> None:
        self._target = target
        self._item_count = item_count

    def set_recipient_keys(self, keys: Mapping[str, Optional[list[str]]]) -> None:
        """Replace the email → public keys map (None: keys not resolved)."""
        self._keys = {
            email: list(public_keys) if public_keys is not None else None
            for email, public_keys in keys.items()
        }

    def set_recipient_roles(self, roles: Mapping[str, ShareRole]) -> None:
        self._roles = dict(roles)

    def set_expiration(self, expire_time: Optional[int]) -> None:
        self._expire_time = expire_time

    # --- Getters ---

    def all_emails(self) -> list[str]:
        return list(self._keys)

    def skipped_emails(self) -> list[str]:
        """Emails with keys but no role; these are left out of any invite."""
        return [email for email in self._keys if email not in self._roles]

    def build_sharing_infos(self, strict: bool = False) -> list[SharingInfos]:
        """Emit one ``SharingInfos`` per email present in both maps.

        Args:
            strict: Raise instead of dropping recipients without a role.

        Returns:
            Invites in recipient-key order. Empty when no target is set.

        Raises:
            IncompleteSharingInformation: In strict mode, if any recipient
                has no role assigned.
        """
        skipped = self.skipped_emails()
        if skipped:
            if strict:
                raise IncompleteSharingInformation(skipped)
            logger.warning(
                "Dropping %d recipient(s) without a role: %s",
                len(skipped), ", ".join(skipped),
            )
        if self._target is None:
            return []
        return [
            SharingInfos(
                target=self._target,
                email=email,
                role=self._roles[email],
                public_keys=public_keys,
                item_count=self._item_count,
                expire_time=self._expire_time,
            )
            for email, public_keys in self._keys.items()
            if email in self._roles
        ]

    def reset(self) -> None:
        """Clear all sharing state."""
        self._target = None
        self._item_count = None
        self._expire_time = None
        self._keys = {}
        self._roles = {}
        logger.debug("Share invite state reset")
