"""Display role tags for a user in a group."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ....config.constants import VerificationStatus


class RoleTagType(str, Enum):
    """Display role types, in the order they are shown."""

    ADMIN = "admin"
    GROUP_ADMIN = "group_admin"
    MODERATOR = "moderator"
    EXPERT = "expert"


class RoleTagSource(str, Enum):
    """Where a display role comes from."""

    PLATFORM = "platform"
    COMMUNITY = "community"
    GROUP = "group"


TAG_PRIORITY: Dict[RoleTagType, int] = {
    RoleTagType.ADMIN: 1,
    RoleTagType.GROUP_ADMIN: 2,
    RoleTagType.MODERATOR: 3,
    RoleTagType.EXPERT: 4,
}


@dataclass(frozen=True)
class RoleTag:
    """One display role; lower priority numbers sort first."""

    type: RoleTagType
    source: RoleTagSource
    verification_status: Optional[VerificationStatus] = None

    @property
    def priority(self) -> int:
        return TAG_PRIORITY[self.type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "priority": self.priority,
            "source": self.source.value,
            "verification_status": self.verification_status.value if self.verification_status else None,
        }
