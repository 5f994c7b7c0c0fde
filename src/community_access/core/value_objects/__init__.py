"""Value objects for community-access."""

from .identifiers import UserId, CommunityId, GroupId
from .scope import Scope

__all__ = [
    "UserId",
    "CommunityId",
    "GroupId",
    "Scope",
]
