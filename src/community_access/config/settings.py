"""Settings for community-access.

Pydantic settings read from the environment (prefix ``COMMUNITY_ACCESS_``)
and an optional ``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import CacheTTL


class AccessSettings(BaseSettings):
    """Runtime settings for stores, caching and authorization policy."""

    model_config = SettingsConfigDict(
        env_prefix="COMMUNITY_ACCESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Stores
    database_url: Optional[str] = Field(default=None)
    redis_url: Optional[str] = Field(default=None)
    store_timeout_seconds: float = Field(default=5.0)
    role_records_table: str = Field(default="role_records")
    memberships_table: str = Field(default="group_memberships")
    groups_table: str = Field(default="groups")
    communities_table: str = Field(default="communities")

    # Role record cache
    role_cache_enabled: bool = Field(default=True)
    role_cache_ttl: int = Field(default=CacheTTL.ROLES_SHORT)

    # Authorization policy
    community_moderators_moderate_groups: bool = Field(default=True)

    # Logging
    log_level: Optional[str] = Field(default=None)
    log_verbosity: str = Field(default="NORMAL")
    log_format: str = Field(default="simple")
    enable_store_logging: bool = Field(default=False)
    enable_audit_logging: bool = Field(default=True)

    @field_validator("store_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Store calls must have a positive deadline."""
        if v <= 0:
            raise ValueError("store_timeout_seconds must be positive")
        return v

    @field_validator("role_cache_ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("role_cache_ttl must be positive")
        return v

    @field_validator("role_records_table", "memberships_table", "groups_table", "communities_table")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table names are interpolated into SQL, so only identifiers are allowed."""
        parts = v.split(".")
        if not all(part.replace("_", "").isalnum() for part in parts) or len(parts) > 2:
            raise ValueError(f"Invalid table name: {v}")
        return v


@lru_cache()
def get_settings() -> AccessSettings:
    """Get cached settings instance."""
    return AccessSettings()
