"""Memberships feature for community-access.

Feature-first layout for the group membership state machine:
- entities/: MembershipRecord with its transition table and the repository protocol
- repositories/: in-memory and AsyncPG implementations
- services/: MembershipLifecycle (transitions with counter side effects)
"""

from .entities import MembershipRecord, MembershipRepository, ALLOWED_EVENTS, counter_delta
from .repositories import InMemoryMembershipRepository, AsyncPGMembershipRepository
from .services import MembershipLifecycle, KeyedLock

__all__ = [
    # Entities
    "MembershipRecord",
    "ALLOWED_EVENTS",
    "counter_delta",

    # Protocols
    "MembershipRepository",

    # Repository Implementations
    "InMemoryMembershipRepository",
    "AsyncPGMembershipRepository",

    # Services
    "MembershipLifecycle",
    "KeyedLock",
]
