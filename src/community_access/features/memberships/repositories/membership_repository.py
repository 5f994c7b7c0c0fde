"""AsyncPG-based membership repository implementation.

Transitions run in one transaction: an UPDATE (or DELETE) guarded by the
expected status, followed by the group counter update on the same
connection. A guard miss raises InvalidTransitionError and rolls back.
"""

import asyncio
import logging
from typing import List, Optional

import asyncpg

from ....config.constants import GroupRole, MembershipStatus
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import ConflictError, InvalidTransitionError, TransientStoreError
from ....core.value_objects import GroupId, UserId
from ...groups.entities import GroupDirectory
from ..entities import MembershipRecord

logger = logging.getLogger(__name__)

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


MEMBERSHIPS_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    group_id UUID NOT NULL,
    user_id UUID NOT NULL,
    status VARCHAR(20) NOT NULL,
    role VARCHAR(20) NOT NULL DEFAULT 'member',
    joined_at TIMESTAMPTZ NOT NULL,
    approved_at TIMESTAMPTZ NULL,
    approved_by UUID NULL,
    banned_at TIMESTAMPTZ NULL,
    banned_by UUID NULL,
    ban_reason VARCHAR(500) NULL,
    left_at TIMESTAMPTZ NULL,
    request_message VARCHAR(500) NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    PRIMARY KEY (group_id, user_id),
    CHECK (status IN ('pending', 'active', 'banned', 'left')),
    CHECK (role IN ('member', 'moderator', 'admin'))
);
CREATE INDEX IF NOT EXISTS {index_prefix}_group_status_idx ON {table} (group_id, status);
CREATE INDEX IF NOT EXISTS {index_prefix}_user_idx ON {table} (user_id);
"""

_COLUMNS = """
    group_id, user_id, status, role, joined_at, approved_at, approved_by,
    banned_at, banned_by, ban_reason, left_at, request_message, updated_at
"""


class AsyncPGMembershipRepository:
    """AsyncPG implementation of MembershipRepository protocol."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        group_directory: GroupDirectory,
        settings: Optional[AccessSettings] = None,
    ):
        """Initialize with a pool and the directory owning the member counter.

        The directory must accept the open connection so the counter update
        joins the membership transaction.
        """
        self.pool = pool
        self.group_directory = group_directory
        self.settings = settings or get_settings()
        self.table = self.settings.memberships_table
        self.timeout = self.settings.store_timeout_seconds

    async def create_schema(self) -> None:
        """Create the memberships table and indexes if missing."""
        index_prefix = self.table.replace(".", "_")
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                await conn.execute(MEMBERSHIPS_DDL.format(table=self.table, index_prefix=index_prefix))
        except _STORE_ERRORS as e:
            logger.error(f"Failed to create memberships schema: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")

    def _build_record_from_row(self, row: asyncpg.Record) -> MembershipRecord:
        """Build MembershipRecord entity from database row."""
        return MembershipRecord(
            group_id=GroupId(row['group_id']),
            user_id=UserId(row['user_id']),
            status=MembershipStatus(row['status']),
            role=GroupRole(row['role']),
            joined_at=row['joined_at'],
            approved_at=row['approved_at'],
            approved_by=UserId(row['approved_by']) if row['approved_by'] else None,
            banned_at=row['banned_at'],
            banned_by=UserId(row['banned_by']) if row['banned_by'] else None,
            ban_reason=row['ban_reason'],
            left_at=row['left_at'],
            request_message=row['request_message'],
            updated_at=row['updated_at'],
        )

    @staticmethod
    def _record_args(record: MembershipRecord) -> tuple:
        return (
            record.group_id.value,
            record.user_id.value,
            record.status.value,
            record.role.value,
            record.joined_at,
            record.approved_at,
            record.approved_by.value if record.approved_by else None,
            record.banned_at,
            record.banned_by.value if record.banned_by else None,
            record.ban_reason,
            record.left_at,
            record.request_message,
            record.updated_at,
        )

    async def _current_status(self, conn, group_id: GroupId, user_id: UserId) -> Optional[str]:
        return await conn.fetchval(
            f"SELECT status FROM {self.table} WHERE group_id = $1 AND user_id = $2",
            group_id.value, user_id.value, timeout=self.timeout,
        )

    def _guard_miss(
        self,
        group_id: GroupId,
        user_id: UserId,
        expected_status: MembershipStatus,
        current: Optional[str],
    ) -> InvalidTransitionError:
        return InvalidTransitionError(
            f"Membership of user {user_id} in group {group_id} is no longer {expected_status.value}",
            current_status=current,
            details={"expected_status": expected_status.value},
        )

    async def get(self, group_id: GroupId, user_id: UserId) -> Optional[MembershipRecord]:
        """Get a membership record by (group, user)."""
        query = f"SELECT {_COLUMNS} FROM {self.table} WHERE group_id = $1 AND user_id = $2"
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                row = await conn.fetchrow(query, group_id.value, user_id.value, timeout=self.timeout)
        except _STORE_ERRORS as e:
            logger.error(f"Failed to load membership of {user_id} in group {group_id}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")
        return self._build_record_from_row(row) if row else None

    async def create(self, record: MembershipRecord, counter_delta: int = 0) -> MembershipRecord:
        """Insert a record and apply its counter delta in one transaction."""
        query = f"""
            INSERT INTO {self.table} ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
        """
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                async with conn.transaction():
                    await conn.execute(query, *self._record_args(record), timeout=self.timeout)
                    if counter_delta:
                        await self.group_directory.adjust_member_count(
                            record.group_id, counter_delta, connection=conn
                        )
        except asyncpg.UniqueViolationError:
            raise ConflictError(
                f"Membership already exists for user {record.user_id} in group {record.group_id}",
                details={"group_id": str(record.group_id), "user_id": str(record.user_id)},
            )
        except _STORE_ERRORS as e:
            logger.error(f"Failed to create membership {record}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")
        return record

    async def commit_transition(
        self,
        record: MembershipRecord,
        expected_status: MembershipStatus,
        counter_delta: int = 0,
    ) -> MembershipRecord:
        """Compare-and-swap the record on its status and adjust the counter."""
        query = f"""
            UPDATE {self.table}
            SET status = $3, role = $4, joined_at = $5, approved_at = $6, approved_by = $7,
                banned_at = $8, banned_by = $9, ban_reason = $10, left_at = $11,
                request_message = $12, updated_at = $13
            WHERE group_id = $1 AND user_id = $2 AND status = $14
        """
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        query, *self._record_args(record), expected_status.value, timeout=self.timeout
                    )
                    if result != "UPDATE 1":
                        current = await self._current_status(conn, record.group_id, record.user_id)
                        raise self._guard_miss(record.group_id, record.user_id, expected_status, current)
                    if counter_delta:
                        await self.group_directory.adjust_member_count(
                            record.group_id, counter_delta, connection=conn
                        )
        except _STORE_ERRORS as e:
            logger.error(f"Failed to commit membership transition {record}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")
        return record

    async def delete_transition(
        self,
        group_id: GroupId,
        user_id: UserId,
        expected_status: MembershipStatus,
    ) -> None:
        """Delete the record if its status is still ``expected_status``."""
        query = f"DELETE FROM {self.table} WHERE group_id = $1 AND user_id = $2 AND status = $3"
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        query, group_id.value, user_id.value, expected_status.value, timeout=self.timeout
                    )
                    if result != "DELETE 1":
                        current = await self._current_status(conn, group_id, user_id)
                        raise self._guard_miss(group_id, user_id, expected_status, current)
        except _STORE_ERRORS as e:
            logger.error(f"Failed to delete membership of {user_id} in group {group_id}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")

    async def list_by_group(
        self,
        group_id: GroupId,
        status: Optional[MembershipStatus] = None,
    ) -> List[MembershipRecord]:
        """Records of a group, oldest join first."""
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE group_id = $1 AND ($2::varchar IS NULL OR status = $2)
            ORDER BY joined_at
        """
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                rows = await conn.fetch(
                    query, group_id.value, status.value if status else None, timeout=self.timeout
                )
        except _STORE_ERRORS as e:
            logger.error(f"Failed to list memberships of group {group_id}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")
        return [self._build_record_from_row(row) for row in rows]

    async def count_active(self, group_id: GroupId) -> int:
        """Number of active records in a group."""
        query = f"SELECT COUNT(*) FROM {self.table} WHERE group_id = $1 AND status = 'active'"
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                return await conn.fetchval(query, group_id.value, timeout=self.timeout)
        except _STORE_ERRORS as e:
            logger.error(f"Failed to count members of group {group_id}: {e}")
            raise TransientStoreError(f"Membership store unavailable: {e}")
