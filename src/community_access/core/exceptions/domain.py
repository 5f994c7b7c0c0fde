"""Domain exceptions for community-access.

NotFound, InvalidTransition, Forbidden, PermissionDenied and TransientStore
errors make up the taxonomy shared by every feature.
"""

from typing import Any, Dict, Optional

from .base import CommunityAccessError


# Configuration Errors
class ConfigurationError(CommunityAccessError):
    """Raised when there's a configuration issue."""
    pass


# Input Errors
class ValidationError(CommunityAccessError):
    """Raised when a value violates a domain constraint."""
    pass


# Lookup Errors
class NotFoundError(CommunityAccessError):
    """Base class for referenced entities that do not exist."""
    pass


class GroupNotFoundError(NotFoundError):
    """Raised when a group is not found."""
    pass


class CommunityNotFoundError(NotFoundError):
    """Raised when a community is not found."""
    pass


class RoleNotFoundError(NotFoundError):
    """Raised when a role record is not found."""
    pass


class MembershipNotFoundError(NotFoundError):
    """Raised when a membership record is not found."""
    pass


# State Errors
class ConflictError(CommunityAccessError):
    """Raised when a record with the same identity already exists."""
    pass


class InvalidTransitionError(CommunityAccessError):
    """Raised when a membership event is not legal from the current status."""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        event: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details.setdefault("current_status", current_status)
        details.setdefault("event", event)
        super().__init__(message, details=details)
        self.current_status = current_status
        self.event = event


class ForbiddenError(CommunityAccessError):
    """Raised when an action is structurally disallowed (e.g. banning the group creator)."""
    pass


# Authorization Errors
class PermissionDeniedError(CommunityAccessError):
    """Raised when the acting user lacks the permission for an action."""
    pass


# Store Errors
class TransientStoreError(CommunityAccessError):
    """Raised when a store load or commit fails or times out.

    Callers must treat this as a failed authorization and may retry the
    outer request.
    """
    pass
