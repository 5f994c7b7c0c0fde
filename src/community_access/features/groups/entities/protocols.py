"""Protocol interfaces for the group and community collaborators."""

from abc import abstractmethod
from typing import Any, Optional, Protocol, runtime_checkable

from ....core.value_objects import CommunityId, GroupId
from .group import Group


@runtime_checkable
class GroupDirectory(Protocol):
    """Lookup of groups plus the member counter callback."""

    @abstractmethod
    async def get_group(self, group_id: GroupId) -> Optional[Group]:
        """Get a group, or None if it does not exist."""
        ...

    @abstractmethod
    async def adjust_member_count(self, group_id: GroupId, delta: int, connection: Any = None) -> int:
        """Add ``delta`` to a group's member count and return the new count.

        ``connection`` is the open transaction of the membership commit when
        the directory shares a database with the membership store.
        """
        ...


@runtime_checkable
class CommunityDirectory(Protocol):
    """Lookup of communities, used for scope chaining."""

    @abstractmethod
    async def exists(self, community_id: CommunityId) -> bool:
        """Check if a community exists."""
        ...
