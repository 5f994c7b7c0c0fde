"""Centralized logging configuration for community-access.

Provides consistent, environment-driven logging for the roles, memberships
and authorization features and the stores they talk to.
"""

import logging
import logging.config
from enum import Enum
from typing import Optional

from .settings import AccessSettings, get_settings


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    """Log verbosity modes."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Warnings and above
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


FORMAT_STRINGS = {
    LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
    LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
}


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map verbosity mode to log level."""
    verbosity_map = {
        LogVerbosity.QUIET: LogLevel.ERROR.value,
        LogVerbosity.NORMAL: LogLevel.WARNING.value,
        LogVerbosity.VERBOSE: LogLevel.INFO.value,
        LogVerbosity.DEBUG: LogLevel.DEBUG.value,
    }
    try:
        return verbosity_map[LogVerbosity(verbosity.upper())]
    except ValueError:
        return LogLevel.WARNING.value


class LoggingConfig:
    """Centralized logging configuration manager."""

    # Store drivers only log errors unless store logging is enabled
    STORE_MODULES = [
        "asyncpg",
        "redis",
    ]

    # Feature modules that get their own level when audit logging is on
    AUDIT_MODULES = [
        "community_access.features.roles.services",
        "community_access.features.memberships.services",
    ]

    @classmethod
    def build_config(
        cls,
        verbosity: str = "NORMAL",
        log_format: str = "simple",
        enable_store_logging: bool = False,
        enable_audit_logging: bool = True,
        log_level: str = None,
    ) -> dict:
        """Build a dictConfig mapping for the given options.

        An explicit ``log_level`` wins over the level derived from verbosity.
        """
        effective_log_level = get_log_level_from_verbosity(verbosity)
        if log_level and log_level.upper() in LogLevel.__members__:
            effective_log_level = log_level.upper()

        try:
            format_string = FORMAT_STRINGS[LogFormat(log_format.lower())]
        except ValueError:
            format_string = FORMAT_STRINGS[LogFormat.SIMPLE]

        logging_config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": format_string,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": effective_log_level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": effective_log_level,
                "handlers": ["console"],
            },
            "loggers": {},
        }

        if not enable_store_logging:
            for module in cls.STORE_MODULES:
                logging_config["loggers"][module] = {
                    "level": "ERROR",
                    "handlers": ["console"],
                    "propagate": False,
                }

        # Grants, revocations and accepted transitions are logged at INFO
        if enable_audit_logging and effective_log_level != "DEBUG":
            for module in cls.AUDIT_MODULES:
                logging_config["loggers"][module] = {
                    "level": "INFO",
                    "handlers": ["console"],
                    "propagate": False,
                }

        return logging_config

    @classmethod
    def from_settings(cls, settings: AccessSettings) -> dict:
        """Build the dictConfig mapping from AccessSettings."""
        return cls.build_config(
            verbosity=settings.log_verbosity,
            log_format=settings.log_format,
            enable_store_logging=settings.enable_store_logging,
            enable_audit_logging=settings.enable_audit_logging,
            log_level=settings.log_level,
        )

    @classmethod
    def configure(cls, settings: Optional[AccessSettings] = None) -> None:
        """Configure logging from settings (``COMMUNITY_ACCESS_LOG_*`` environment)."""
        settings = settings or get_settings()
        logging.config.dictConfig(cls.from_settings(settings))

        logger = logging.getLogger(__name__)
        logger.debug(f"Logging configured: verbosity={settings.log_verbosity}, format={settings.log_format}")

    @classmethod
    def set_module_level(cls, module_name: str, level: str) -> None:
        """Set log level for a specific module."""
        logging.getLogger(module_name).setLevel(getattr(logging, level.upper()))


def setup_logging(settings: Optional[AccessSettings] = None) -> None:
    """Setup logging configuration from settings.

    This is the main entry point for configuring logging in an application
    embedding community-access. The package calls it once at import with the
    environment settings; call it again with explicit settings to override.
    """
    LoggingConfig.configure(settings)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for a module name."""
    return logging.getLogger(name)
