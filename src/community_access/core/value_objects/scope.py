"""Scope value object.

A scope is the level a role grant applies at, and the level a permission
query is asked at: the platform, one community, or one group. A group scope
used as a query may also carry the group's parent community so that
community-level grants can be chained in.
"""

from dataclasses import dataclass
from typing import Optional

from ...config.constants import ScopeLevel
from .identifiers import CommunityId, GroupId


@dataclass(frozen=True)
class Scope:
    """Immutable scope with a level tag and the ids that level requires."""

    level: ScopeLevel
    community_id: Optional[CommunityId] = None
    group_id: Optional[GroupId] = None

    def __post_init__(self):
        """Validate that the ids present match the level."""
        if self.level == ScopeLevel.PLATFORM:
            if self.community_id is not None or self.group_id is not None:
                raise ValueError("Platform scope cannot carry a community or group id")
        elif self.level == ScopeLevel.COMMUNITY:
            if self.community_id is None or self.group_id is not None:
                raise ValueError("Community scope requires a community id and no group id")
        elif self.level == ScopeLevel.GROUP:
            if self.group_id is None:
                raise ValueError("Group scope requires a group id")

    @classmethod
    def platform(cls) -> 'Scope':
        return cls(ScopeLevel.PLATFORM)

    @classmethod
    def community(cls, community_id: CommunityId) -> 'Scope':
        return cls(ScopeLevel.COMMUNITY, community_id=community_id)

    @classmethod
    def group(cls, group_id: GroupId, community_id: Optional[CommunityId] = None) -> 'Scope':
        """Group scope, optionally chained to its parent community."""
        return cls(ScopeLevel.GROUP, community_id=community_id, group_id=group_id)

    @property
    def is_platform(self) -> bool:
        return self.level == ScopeLevel.PLATFORM

    @property
    def is_community(self) -> bool:
        return self.level == ScopeLevel.COMMUNITY

    @property
    def is_group(self) -> bool:
        return self.level == ScopeLevel.GROUP

    @property
    def parent_community_id(self) -> Optional[CommunityId]:
        """Community enclosing this scope, if known."""
        return self.community_id if self.level != ScopeLevel.PLATFORM else None

    def identity(self) -> 'Scope':
        """Scope as stored on a role record (a group grant never stores its parent)."""
        if self.level == ScopeLevel.GROUP and self.community_id is not None:
            return Scope.group(self.group_id)
        return self

    def with_parent(self, community_id: CommunityId) -> 'Scope':
        """Chain a group scope to its parent community."""
        if self.level != ScopeLevel.GROUP:
            raise ValueError("Only a group scope can be chained to a parent community")
        return Scope.group(self.group_id, community_id)

    def covers(self, query: 'Scope') -> bool:
        """Check if a grant at this scope applies to a query at ``query``.

        Platform grants cover every query. A community grant covers that
        community and any group chained to it. A group grant covers only that
        group.
        """
        if self.level == ScopeLevel.PLATFORM:
            return True
        if self.level == ScopeLevel.COMMUNITY:
            return query.parent_community_id is not None and query.parent_community_id == self.community_id
        return query.level == ScopeLevel.GROUP and query.group_id == self.group_id

    @property
    def key(self) -> str:
        """Stable string key, used for logging and cache keys."""
        if self.level == ScopeLevel.PLATFORM:
            return "platform"
        if self.level == ScopeLevel.COMMUNITY:
            return f"community:{self.community_id}"
        return f"group:{self.group_id}"

    def __str__(self) -> str:
        return self.key
