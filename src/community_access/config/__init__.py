"""Configuration module for community-access."""

from .constants import (
    CacheKeys,
    CacheTTL,
    FieldLimits,
    RoleKind,
    ScopeLevel,
    PermissionToken,
    VerificationStatus,
    ExpertiseArea,
    MembershipStatus,
    MembershipEvent,
    GroupRole,
    GroupType,
)
from .logging_config import (
    setup_logging,
    get_logger,
    LogVerbosity,
    LogFormat,
    LoggingConfig,
)
from .settings import AccessSettings, get_settings

__all__ = [
    # Constants
    "CacheKeys",
    "CacheTTL",
    "FieldLimits",
    "RoleKind",
    "ScopeLevel",
    "PermissionToken",
    "VerificationStatus",
    "ExpertiseArea",
    "MembershipStatus",
    "MembershipEvent",
    "GroupRole",
    "GroupType",

    # Logging
    "setup_logging",
    "get_logger",
    "LogVerbosity",
    "LogFormat",
    "LoggingConfig",

    # Settings
    "AccessSettings",
    "get_settings",
]
