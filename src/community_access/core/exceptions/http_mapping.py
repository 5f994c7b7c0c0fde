"""HTTP status code mapping for exceptions.

Callers translate community-access errors into request-level responses; this
module gives them the default mapping and lets them override entries.
"""

from typing import Dict, Type

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


HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    # 400 Bad Request
    ValidationError: 400,

    # 403 Forbidden
    ForbiddenError: 403,
    PermissionDeniedError: 403,

    # 404 Not Found
    NotFoundError: 404,
    GroupNotFoundError: 404,
    CommunityNotFoundError: 404,
    RoleNotFoundError: 404,
    MembershipNotFoundError: 404,

    # 409 Conflict
    ConflictError: 409,
    InvalidTransitionError: 409,

    # 500 Internal Server Error
    ConfigurationError: 500,

    # 503 Service Unavailable
    TransientStoreError: 503,
}

_overrides: Dict[Type[Exception], int] = {}


def set_status_override(exception_class: Type[Exception], status_code: int) -> None:
    """Override the status code for an exception class."""
    if not 100 <= status_code <= 599:
        raise ValueError(f"Invalid HTTP status code: {status_code}")
    _overrides[exception_class] = status_code


def clear_status_overrides() -> None:
    """Remove all status code overrides."""
    _overrides.clear()


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception, walking its class hierarchy."""
    for exception_class in type(exception).__mro__:
        if exception_class in _overrides:
            return _overrides[exception_class]
        if exception_class in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[exception_class]
    return 500
