"""Membership entities package."""

from .membership import (
    ALLOWED_EVENTS,
    DELETING_EVENTS,
    MembershipKey,
    MembershipRecord,
    counter_delta,
)
from .protocols import MembershipRepository

__all__ = [
    "ALLOWED_EVENTS",
    "DELETING_EVENTS",
    "MembershipKey",
    "MembershipRecord",
    "counter_delta",
    "MembershipRepository",
]
