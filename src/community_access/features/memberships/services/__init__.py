"""Membership services package."""

from .membership_lifecycle import MembershipLifecycle
from .record_locks import KeyedLock

__all__ = [
    "MembershipLifecycle",
    "KeyedLock",
]
