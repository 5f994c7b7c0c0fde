"""Membership repository implementations."""

from .memory_repository import InMemoryMembershipRepository
from .membership_repository import AsyncPGMembershipRepository, MEMBERSHIPS_DDL

__all__ = [
    "InMemoryMembershipRepository",
    "AsyncPGMembershipRepository",
    "MEMBERSHIPS_DDL",
]
