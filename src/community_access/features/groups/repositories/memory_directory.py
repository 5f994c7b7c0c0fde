"""In-memory group and community directories."""

import copy
import logging
from typing import Any, Dict, Iterable, Optional, Set

from ....config.constants import GroupType
from ....core.exceptions import GroupNotFoundError, ValidationError
from ....core.value_objects import CommunityId, GroupId
from ..entities import Group

logger = logging.getLogger(__name__)


class InMemoryGroupDirectory:
    """Dict-backed GroupDirectory."""

    def __init__(self, groups: Optional[Iterable[Group]] = None):
        self._groups: Dict[GroupId, Group] = {}
        for group in groups or []:
            self.add_group(group)

    def add_group(self, group: Group) -> Group:
        """Register a group (the surrounding application owns group creation)."""
        self._groups[group.id] = copy.deepcopy(group)
        return group

    async def get_group(self, group_id: GroupId) -> Optional[Group]:
        group = self._groups.get(group_id)
        return copy.deepcopy(group) if group else None

    async def adjust_member_count(self, group_id: GroupId, delta: int, connection: Any = None) -> int:
        group = self._groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        new_count = group.member_count + delta
        if new_count < 0:
            raise ValidationError(
                f"Member count for group {group_id} would drop below zero",
                details={"member_count": group.member_count, "delta": delta},
            )
        group.member_count = new_count
        return new_count

    def set_group_type(self, group_id: GroupId, group_type: GroupType) -> None:
        """Change a group's visibility type."""
        group = self._groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        group.group_type = GroupType(group_type)


class InMemoryCommunityDirectory:
    """Set-backed CommunityDirectory."""

    def __init__(self, community_ids: Optional[Iterable[CommunityId]] = None):
        self._communities: Set[CommunityId] = set(community_ids or [])

    def add_community(self, community_id: CommunityId) -> None:
        self._communities.add(community_id)

    async def exists(self, community_id: CommunityId) -> bool:
        return community_id in self._communities
