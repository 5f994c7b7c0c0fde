"""Group domain entity.

The group aggregate belongs to the surrounding application; community-access
only reads the fields it needs for authorization and maintains member_count
through membership transitions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ....config.constants import GroupType
from ....core.value_objects import CommunityId, GroupId, UserId
from ....utils import utc_now


@dataclass
class Group:
    """Group as seen by authorization and the membership lifecycle."""

    id: GroupId
    community_id: CommunityId
    created_by: UserId
    group_type: GroupType = GroupType.PUBLIC
    member_count: int = 0
    title: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if isinstance(self.group_type, str):
            self.group_type = GroupType(self.group_type.lower())
        if self.member_count < 0:
            raise ValueError(f"member_count cannot be negative: {self.member_count}")

    @property
    def is_public(self) -> bool:
        return self.group_type == GroupType.PUBLIC

    @property
    def requires_approval(self) -> bool:
        """Private and secret groups hold join requests for approval."""
        return self.group_type in (GroupType.PRIVATE, GroupType.SECRET)

    def is_creator(self, user_id: UserId) -> bool:
        return self.created_by == user_id
