"""Constants and enums for community-access.

This module defines the enumerations shared by the roles, memberships and
authorization features. Values correspond to the stored string values of the
role_records, group_memberships and groups tables.
"""

from enum import Enum
from typing import Final


class CacheKeys:
    """Cache key patterns for Redis."""

    USER_ROLES: Final[str] = "community_access:roles:{user_id}"
    USER_ROLES_GENERATION: Final[str] = "community_access:roles:{user_id}:generation"


class CacheTTL:
    """Cache TTL values in seconds."""

    ROLES_SHORT: Final[int] = 300      # 5 minutes
    ROLES_LONG: Final[int] = 3600       # 1 hour


class FieldLimits:
    """Maximum lengths for free-text fields."""

    REQUEST_MESSAGE: Final[int] = 500
    BAN_REASON: Final[int] = 500
    CREDENTIALS: Final[int] = 1000


class RoleKind(str, Enum):
    """Kinds of role grants a user can hold."""

    PLATFORM_ADMIN = "platform_admin"
    COMMUNITY_MODERATOR = "community_moderator"
    COMMUNITY_EXPERT = "community_expert"
    GROUP_ADMIN = "group_admin"
    GROUP_MODERATOR = "group_moderator"
    ORDINARY_USER = "ordinary_user"


class ScopeLevel(str, Enum):
    """Levels of the scope hierarchy."""

    PLATFORM = "platform"
    COMMUNITY = "community"
    GROUP = "group"


class PermissionToken(str, Enum):
    """Permission tokens gating write actions."""

    CREATE_COMMUNITY = "create_community"
    EDIT_COMMUNITY = "edit_community"
    DELETE_COMMUNITY = "delete_community"
    ASSIGN_MODERATORS = "assign_moderators"
    APPROVE_EXPERTS = "approve_experts"
    MANAGE_GROUPS = "manage_groups"
    MODERATE_POSTS = "moderate_posts"
    BAN_USERS = "ban_users"
    VIEW_REPORTS = "view_reports"
    MARK_BEST_ANSWER = "mark_best_answer"
    PIN_POSTS = "pin_posts"


class VerificationStatus(str, Enum):
    """Expert verification states."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ExpertiseArea(str, Enum):
    """Areas an expert can be verified in."""

    CHILD_PSYCHOLOGY = "Child Psychology"
    PEDIATRIC_HEALTH = "Pediatric Health"
    EDUCATION = "Education"
    NUTRITION = "Nutrition"
    CHILD_DEVELOPMENT = "Child Development"
    SPECIAL_NEEDS = "Special Needs"
    MENTAL_HEALTH = "Mental Health"
    PARENTING_TECHNIQUES = "Parenting Techniques"
    SAFETY = "Safety"
    TECHNOLOGY_AND_SCREEN_TIME = "Technology & Screen Time"


class MembershipStatus(str, Enum):
    """Group membership states."""

    PENDING = "pending"
    ACTIVE = "active"
    BANNED = "banned"
    LEFT = "left"


class MembershipEvent(str, Enum):
    """Events driving the membership state machine."""

    JOIN = "join"
    APPROVE = "approve"
    REJECT = "reject"
    WITHDRAW = "withdraw"
    LEAVE = "leave"
    BAN = "ban"
    UNBAN = "unban"
    REJOIN = "rejoin"


class GroupRole(str, Enum):
    """Group-local roles carried on a membership record."""

    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class GroupType(str, Enum):
    """Group visibility types."""

    PUBLIC = "public"
    PRIVATE = "private"
    SECRET = "secret"
