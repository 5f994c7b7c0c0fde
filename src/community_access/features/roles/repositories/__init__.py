"""Role record repository implementations."""

from .memory_repository import InMemoryRoleRecordRepository
from .memory_cache import InMemoryRoleRecordCache
from .role_record_repository import AsyncPGRoleRecordRepository, ROLE_RECORDS_DDL
from .redis_cache import RedisRoleRecordCache

__all__ = [
    "InMemoryRoleRecordRepository",
    "InMemoryRoleRecordCache",
    "AsyncPGRoleRecordRepository",
    "ROLE_RECORDS_DDL",
    "RedisRoleRecordCache",
]
