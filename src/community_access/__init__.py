"""Community-Access - scoped roles and group membership for community platforms.

This library resolves platform, community and group role grants into
permission answers, runs the group membership lifecycle with its member
counter side effects, and composes both into the authorization questions
request handlers ask before mutating state.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import (
    AccessSettings,
    get_settings,
    RoleKind,
    ScopeLevel,
    PermissionToken,
    VerificationStatus,
    ExpertiseArea,
    MembershipStatus,
    GroupRole,
    GroupType,
)

from .core.exceptions import (
    # Base Exception
    CommunityAccessError,

    # Domain Exceptions
    ConfigurationError,
    ValidationError,
    NotFoundError,
    GroupNotFoundError,
    CommunityNotFoundError,
    RoleNotFoundError,
    MembershipNotFoundError,
    ConflictError,
    InvalidTransitionError,
    ForbiddenError,
    PermissionDeniedError,
    TransientStoreError,

    # Utility Functions
    get_http_status_code,
    create_error_response,
)

from .core.value_objects import UserId, CommunityId, GroupId, Scope

from .features.groups import (
    Group,
    GroupDirectory,
    CommunityDirectory,
    InMemoryGroupDirectory,
    InMemoryCommunityDirectory,
)
from .features.roles import RoleRecord, PermissionResolver, RoleService
from .features.memberships import MembershipRecord, MembershipLifecycle
from .features.authorization import (
    AuthorizationDecision,
    DenialReason,
    RoleTag,
    AuthorizationGate,
    CommunityAccessService,
    create_access_service_from_settings,
    create_in_memory_access_service,
    create_postgres_access_service,
)

__all__ = [
    "__version__",

    # Configuration
    "AccessSettings",
    "get_settings",
    "RoleKind",
    "ScopeLevel",
    "PermissionToken",
    "VerificationStatus",
    "ExpertiseArea",
    "MembershipStatus",
    "GroupRole",
    "GroupType",

    # Exceptions
    "CommunityAccessError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "GroupNotFoundError",
    "CommunityNotFoundError",
    "RoleNotFoundError",
    "MembershipNotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ForbiddenError",
    "PermissionDeniedError",
    "TransientStoreError",
    "get_http_status_code",
    "create_error_response",

    # Value Objects
    "UserId",
    "CommunityId",
    "GroupId",
    "Scope",

    # Groups
    "Group",
    "GroupDirectory",
    "CommunityDirectory",
    "InMemoryGroupDirectory",
    "InMemoryCommunityDirectory",

    # Roles
    "RoleRecord",
    "PermissionResolver",
    "RoleService",

    # Memberships
    "MembershipRecord",
    "MembershipLifecycle",

    # Authorization
    "AuthorizationDecision",
    "DenialReason",
    "RoleTag",
    "AuthorizationGate",
    "CommunityAccessService",
    "create_access_service_from_settings",
    "create_in_memory_access_service",
    "create_postgres_access_service",
]
