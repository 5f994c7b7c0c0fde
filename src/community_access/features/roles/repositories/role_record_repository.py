"""AsyncPG-based role record repository implementation.

Concrete implementation of the RoleRecordRepository protocol using AsyncPG.
Every statement runs with the configured store timeout; driver errors and
timeouts surface as TransientStoreError.
"""

import asyncio
import logging
from typing import Any, List, Optional
from uuid import UUID

import asyncpg

from ....config.constants import (
    ExpertiseArea,
    RoleKind,
    ScopeLevel,
    VerificationStatus,
)
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import ConflictError, RoleNotFoundError, TransientStoreError
from ....core.value_objects import CommunityId, GroupId, Scope, UserId
from ..entities import RoleRecord, parse_permission_tokens, scope_level_for

logger = logging.getLogger(__name__)


ROLE_RECORDS_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id UUID PRIMARY KEY,
    subject_user_id UUID NOT NULL,
    role_kind VARCHAR(40) NOT NULL,
    scope_community_id UUID NULL,
    scope_group_id UUID NULL,
    permissions TEXT[] NOT NULL DEFAULT '{{}}',
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    permissions_overridden BOOLEAN NOT NULL DEFAULT FALSE,
    granted_by UUID NULL,
    granted_at TIMESTAMPTZ NOT NULL,
    expertise_areas TEXT[] NOT NULL DEFAULT '{{}}',
    credentials VARCHAR(1000) NULL,
    verification_status VARCHAR(20) NULL,
    verified_at TIMESTAMPTZ NULL,
    verified_by UUID NULL,
    deactivated_at TIMESTAMPTZ NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    CHECK (role_kind <> 'platform_admin' OR (scope_community_id IS NULL AND scope_group_id IS NULL))
);
CREATE UNIQUE INDEX IF NOT EXISTS {index_prefix}_identity_uq ON {table} (
    subject_user_id,
    role_kind,
    COALESCE(scope_community_id, '00000000-0000-0000-0000-000000000000'::uuid),
    COALESCE(scope_group_id, '00000000-0000-0000-0000-000000000000'::uuid)
);
CREATE INDEX IF NOT EXISTS {index_prefix}_user_active_idx ON {table} (subject_user_id, is_active);
CREATE INDEX IF NOT EXISTS {index_prefix}_kind_active_idx ON {table} (role_kind, is_active);
"""

_COLUMNS = """
    id, subject_user_id, role_kind, scope_community_id, scope_group_id,
    permissions, is_active, permissions_overridden, granted_by, granted_at,
    expertise_areas, credentials, verification_status, verified_at, verified_by,
    deactivated_at, updated_at
"""


def _uuid(value: Any) -> Optional[UUID]:
    return value.value if value is not None else None


class AsyncPGRoleRecordRepository:
    """AsyncPG implementation of RoleRecordRepository protocol."""

    def __init__(self, pool: asyncpg.Pool, settings: Optional[AccessSettings] = None):
        """Initialize with a connection pool and table/timeout settings."""
        self.pool = pool
        self.settings = settings or get_settings()
        self.table = self.settings.role_records_table
        self.timeout = self.settings.store_timeout_seconds

    async def _run(self, operation: str, method: str, query: str, *args):
        """Run one statement on a pooled connection, mapping store failures."""
        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                return await getattr(conn, method)(query, *args, timeout=self.timeout)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"Role record already exists: {e}")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Role record store failed during {operation}: {e}")
            raise TransientStoreError(f"Role record store unavailable: {operation}", details={"operation": operation})

    async def create_schema(self) -> None:
        """Create the role records table and indexes if missing."""
        index_prefix = self.table.replace(".", "_")
        await self._run("create_schema", "execute", ROLE_RECORDS_DDL.format(table=self.table, index_prefix=index_prefix))

    def _build_record_from_row(self, row: asyncpg.Record) -> RoleRecord:
        """Build RoleRecord entity from database row."""
        role_kind = RoleKind(row['role_kind'])
        level = scope_level_for(role_kind)
        if level == ScopeLevel.PLATFORM:
            scope = Scope.platform()
        elif level == ScopeLevel.COMMUNITY:
            scope = Scope.community(CommunityId(row['scope_community_id']))
        else:
            scope = Scope.group(GroupId(row['scope_group_id']))

        return RoleRecord(
            id=str(row['id']),
            subject_user_id=UserId(row['subject_user_id']),
            role_kind=role_kind,
            scope=scope,
            permissions=parse_permission_tokens(row['permissions'] or []),
            is_active=row['is_active'],
            permissions_overridden=row['permissions_overridden'],
            granted_by=UserId(row['granted_by']) if row['granted_by'] else None,
            granted_at=row['granted_at'],
            expertise_areas=[ExpertiseArea(area) for area in (row['expertise_areas'] or [])],
            credentials=row['credentials'],
            verification_status=(
                VerificationStatus(row['verification_status']) if row['verification_status'] else None
            ),
            verified_at=row['verified_at'],
            verified_by=UserId(row['verified_by']) if row['verified_by'] else None,
            deactivated_at=row['deactivated_at'],
            updated_at=row['updated_at'],
        )

    def _record_args(self, record: RoleRecord) -> tuple:
        return (
            UUID(record.id),
            record.subject_user_id.value,
            record.role_kind.value,
            _uuid(record.scope_community_id),
            _uuid(record.scope_group_id),
            sorted(token.value for token in record.permissions),
            record.is_active,
            record.permissions_overridden,
            _uuid(record.granted_by),
            record.granted_at,
            [area.value for area in record.expertise_areas],
            record.credentials,
            record.verification_status.value if record.verification_status else None,
            record.verified_at,
            _uuid(record.verified_by),
            record.deactivated_at,
            record.updated_at,
        )

    async def list_active_for_user(self, user_id: UserId) -> List[RoleRecord]:
        """Get all active role records for a user."""
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE subject_user_id = $1 AND is_active = true
        """
        rows = await self._run("list_active_for_user", "fetch", query, user_id.value)
        return [self._build_record_from_row(row) for row in rows]

    async def find(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> Optional[RoleRecord]:
        """Get the record with this identity, active or not."""
        scope = scope.identity()
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE subject_user_id = $1
              AND role_kind = $2
              AND scope_community_id IS NOT DISTINCT FROM $3
              AND scope_group_id IS NOT DISTINCT FROM $4
        """
        row = await self._run(
            "find", "fetchrow", query,
            user_id.value, role_kind.value, _uuid(scope.community_id), _uuid(scope.group_id),
        )
        return self._build_record_from_row(row) if row else None

    async def insert(self, record: RoleRecord) -> RoleRecord:
        """Store a new record."""
        query = f"""
            INSERT INTO {self.table} ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
        """
        await self._run("insert", "execute", query, *self._record_args(record))
        return record

    async def update(self, record: RoleRecord) -> RoleRecord:
        """Persist changes to an existing record."""
        query = f"""
            UPDATE {self.table}
            SET subject_user_id = $2, role_kind = $3, scope_community_id = $4, scope_group_id = $5,
                permissions = $6, is_active = $7, permissions_overridden = $8, granted_by = $9,
                granted_at = $10, expertise_areas = $11, credentials = $12, verification_status = $13,
                verified_at = $14, verified_by = $15, deactivated_at = $16, updated_at = $17
            WHERE id = $1
        """
        result = await self._run("update", "execute", query, *self._record_args(record))
        if result != "UPDATE 1":
            raise RoleNotFoundError(f"Role record not found: {record.id}")
        return record

    async def list_by_kind(
        self,
        role_kind: RoleKind,
        is_active: bool = True,
        verification_status: Optional[VerificationStatus] = None,
    ) -> List[RoleRecord]:
        """Get records of a kind, newest grant first."""
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE role_kind = $1
              AND is_active = $2
              AND ($3::varchar IS NULL OR verification_status = $3)
            ORDER BY granted_at DESC
        """
        rows = await self._run(
            "list_by_kind", "fetch", query,
            role_kind.value, is_active, verification_status.value if verification_status else None,
        )
        return [self._build_record_from_row(row) for row in rows]
