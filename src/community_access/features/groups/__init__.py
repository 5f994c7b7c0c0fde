"""Groups feature for community-access.

The group and community aggregates live in the surrounding application;
this feature defines the read-only view of them that authorization needs
and the member counter callback used by membership transitions.
"""

from .entities import Group, GroupDirectory, CommunityDirectory
from .repositories import (
    InMemoryGroupDirectory,
    InMemoryCommunityDirectory,
    AsyncPGGroupDirectory,
    AsyncPGCommunityDirectory,
)

__all__ = [
    "Group",
    "GroupDirectory",
    "CommunityDirectory",
    "InMemoryGroupDirectory",
    "InMemoryCommunityDirectory",
    "AsyncPGGroupDirectory",
    "AsyncPGCommunityDirectory",
]
