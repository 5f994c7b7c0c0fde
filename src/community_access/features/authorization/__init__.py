"""Authorization feature for community-access.

Composes role resolution and group membership into the questions write
handlers ask, and exposes CommunityAccessService as the library boundary.
"""

from .entities import AuthorizationDecision, DenialReason, RoleTag, RoleTagSource, RoleTagType
from .services import (
    AuthorizationGate,
    CommunityAccessService,
    create_access_service_from_settings,
    create_in_memory_access_service,
    create_postgres_access_service,
)

__all__ = [
    # Entities
    "AuthorizationDecision",
    "DenialReason",
    "RoleTag",
    "RoleTagSource",
    "RoleTagType",

    # Services
    "AuthorizationGate",
    "CommunityAccessService",
    "create_access_service_from_settings",
    "create_in_memory_access_service",
    "create_postgres_access_service",
]
