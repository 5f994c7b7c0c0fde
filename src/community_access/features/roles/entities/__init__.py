"""Role entities package.

Domain entities, the static permission table and protocols for role grants.
"""

from .permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    ROLE_SCOPE_LEVELS,
    ROLE_PRECEDENCE,
    EXPERT_GATED_PERMISSIONS,
    MODERATION_PERMISSIONS,
    derive_permissions,
    scope_level_for,
    parse_permission_tokens,
)
from .role_record import RoleRecord, RoleIdentity, validate_role_scope
from .protocols import RoleRecordRepository, RoleRecordCache

__all__ = [
    # Permission table
    "ALL_PERMISSIONS",
    "ROLE_PERMISSIONS",
    "ROLE_SCOPE_LEVELS",
    "ROLE_PRECEDENCE",
    "EXPERT_GATED_PERMISSIONS",
    "MODERATION_PERMISSIONS",
    "derive_permissions",
    "scope_level_for",
    "parse_permission_tokens",

    # Domain entities
    "RoleRecord",
    "RoleIdentity",
    "validate_role_scope",

    # Protocols
    "RoleRecordRepository",
    "RoleRecordCache",
]
