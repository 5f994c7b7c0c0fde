"""Exceptions module for community-access."""

from .base import (
    CommunityAccessError,
    get_http_status_code,
    create_error_response,
)

from .domain import (
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
)

from .http_mapping import (
    HTTP_STATUS_MAP,
    set_status_override,
    clear_status_overrides,
)

__all__ = [
    # Base
    "CommunityAccessError",
    "get_http_status_code",
    "create_error_response",

    # Domain
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

    # HTTP mapping
    "HTTP_STATUS_MAP",
    "set_status_override",
    "clear_status_overrides",
]
