"""Role services package."""

from .permission_resolver import PermissionResolver
from .role_service import RoleService

__all__ = [
    "PermissionResolver",
    "RoleService",
]
