"""AsyncPG-based group and community directories.

Reads the application's groups and communities tables. The member counter
update runs on the caller's connection so it commits in the same transaction
as the membership change.
"""

import asyncio
import logging
from typing import Any, Optional

import asyncpg

from ....config.constants import GroupType
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import GroupNotFoundError, TransientStoreError, ValidationError
from ....core.value_objects import CommunityId, GroupId, UserId
from ..entities import Group

logger = logging.getLogger(__name__)

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class AsyncPGGroupDirectory:
    """AsyncPG implementation of GroupDirectory."""

    def __init__(self, pool: asyncpg.Pool, settings: Optional[AccessSettings] = None):
        self.pool = pool
        self.settings = settings or get_settings()
        self.table = self.settings.groups_table
        self.timeout = self.settings.store_timeout_seconds

    def _build_group_from_row(self, row: asyncpg.Record) -> Group:
        return Group(
            id=GroupId(row['id']),
            community_id=CommunityId(row['community_id']),
            created_by=UserId(row['created_by']),
            group_type=GroupType(row['type'].lower()),
            member_count=row['member_count'],
            title=row['title'],
            created_at=row['created_at'],
        )

    async def get_group(self, group_id: GroupId) -> Optional[Group]:
        """Get a group by id."""
        query = f"""
            SELECT id, community_id, created_by, type, member_count, title, created_at
            FROM {self.table}
            WHERE id = $1
        """
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                row = await conn.fetchrow(query, group_id.value, timeout=self.timeout)
        except _STORE_ERRORS as e:
            logger.error(f"Failed to load group {group_id}: {e}")
            raise TransientStoreError(f"Group store unavailable: {e}")
        return self._build_group_from_row(row) if row else None

    async def adjust_member_count(self, group_id: GroupId, delta: int, connection: Any = None) -> int:
        """Add ``delta`` to member_count, on ``connection`` when given."""
        query = f"""
            UPDATE {self.table}
            SET member_count = member_count + $2
            WHERE id = $1 AND member_count + $2 >= 0
            RETURNING member_count
        """
        try:
            if connection is not None:
                new_count = await connection.fetchval(query, group_id.value, delta, timeout=self.timeout)
            else:
                async with self.pool.acquire(timeout=self.timeout) as conn:
                    new_count = await conn.fetchval(query, group_id.value, delta, timeout=self.timeout)
        except _STORE_ERRORS as e:
            logger.error(f"Failed to adjust member count for group {group_id}: {e}")
            raise TransientStoreError(f"Group store unavailable: {e}")

        if new_count is None:
            if await self.get_group(group_id) is None:
                raise GroupNotFoundError(f"Group not found: {group_id}")
            raise ValidationError(
                f"Member count for group {group_id} would drop below zero",
                details={"delta": delta},
            )
        return new_count


class AsyncPGCommunityDirectory:
    """AsyncPG implementation of CommunityDirectory."""

    def __init__(self, pool: asyncpg.Pool, settings: Optional[AccessSettings] = None):
        self.pool = pool
        self.settings = settings or get_settings()
        self.table = self.settings.communities_table
        self.timeout = self.settings.store_timeout_seconds

    async def exists(self, community_id: CommunityId) -> bool:
        """Check if a community exists."""
        query = f"SELECT EXISTS(SELECT 1 FROM {self.table} WHERE id = $1)"
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                return bool(await conn.fetchval(query, community_id.value, timeout=self.timeout))
        except _STORE_ERRORS as e:
            logger.error(f"Failed to look up community {community_id}: {e}")
            raise TransientStoreError(f"Community store unavailable: {e}")
