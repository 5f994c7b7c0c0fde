"""Roles feature for community-access.

Feature-first layout for scoped role grants:
- entities/: RoleRecord, the static role-to-permission table and protocols
- repositories/: in-memory, AsyncPG and Redis cache implementations
- services/: PermissionResolver (pure) and RoleService (grant management)
"""

from .entities import (
    RoleRecord,
    RoleRecordRepository,
    RoleRecordCache,
    ROLE_PERMISSIONS,
    EXPERT_GATED_PERMISSIONS,
    derive_permissions,
)
from .repositories import (
    InMemoryRoleRecordRepository,
    InMemoryRoleRecordCache,
    AsyncPGRoleRecordRepository,
    RedisRoleRecordCache,
)
from .services import PermissionResolver, RoleService

__all__ = [
    # Entities
    "RoleRecord",
    "ROLE_PERMISSIONS",
    "EXPERT_GATED_PERMISSIONS",
    "derive_permissions",

    # Protocols
    "RoleRecordRepository",
    "RoleRecordCache",

    # Repository Implementations
    "InMemoryRoleRecordRepository",
    "InMemoryRoleRecordCache",
    "AsyncPGRoleRecordRepository",
    "RedisRoleRecordCache",

    # Services
    "PermissionResolver",
    "RoleService",
]
