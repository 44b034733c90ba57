"""Secure sharing — Aggregates invite intent and re-wraps existing keys."""

from .aggregator import ShareInviteAggregator
from .rewrap import ShareKeyRewrapper
from .invites import prepare_invites, new_user_signature_payload

__all__ = [
    "ShareInviteAggregator",
    "ShareKeyRewrapper",
    "prepare_invites",
    "new_user_signature_payload",
]
