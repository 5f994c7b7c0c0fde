"""Core building blocks shared by all community-access features."""

from .exceptions import (
    CommunityAccessError,
    NotFoundError,
    InvalidTransitionError,
    ForbiddenError,
    PermissionDeniedError,
    TransientStoreError,
)
from .value_objects import UserId, CommunityId, GroupId, Scope

__all__ = [
    "CommunityAccessError",
    "NotFoundError",
    "InvalidTransitionError",
    "ForbiddenError",
    "PermissionDeniedError",
    "TransientStoreError",
    "UserId",
    "CommunityId",
    "GroupId",
    "Scope",
]
