"""Authorization services package."""

from .authorization_gate import AuthorizationGate
from .access_service import (
    CommunityAccessService,
    GRANT_AUTHORITY,
    create_access_service_from_settings,
    create_in_memory_access_service,
    create_postgres_access_service,
)

__all__ = [
    "AuthorizationGate",
    "CommunityAccessService",
    "GRANT_AUTHORITY",
    "create_access_service_from_settings",
    "create_in_memory_access_service",
    "create_postgres_access_service",
]
