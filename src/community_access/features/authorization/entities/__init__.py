"""Authorization entities package."""

from .decision import AuthorizationDecision, DenialReason
from .role_tag import RoleTag, RoleTagSource, RoleTagType, TAG_PRIORITY

__all__ = [
    "AuthorizationDecision",
    "DenialReason",
    "RoleTag",
    "RoleTagSource",
    "RoleTagType",
    "TAG_PRIORITY",
]
