"""Group and community directory implementations."""

from .memory_directory import InMemoryGroupDirectory, InMemoryCommunityDirectory
from .group_directory import AsyncPGGroupDirectory, AsyncPGCommunityDirectory

__all__ = [
    "InMemoryGroupDirectory",
    "InMemoryCommunityDirectory",
    "AsyncPGGroupDirectory",
    "AsyncPGCommunityDirectory",
]
