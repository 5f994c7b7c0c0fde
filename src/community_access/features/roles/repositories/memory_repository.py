"""In-memory RoleRecordRepository for tests and embedding."""

import asyncio
import copy
import logging
from typing import Dict, List, Optional

from ....config.constants import RoleKind, VerificationStatus
from ....core.exceptions import ConflictError, RoleNotFoundError
from ....core.value_objects import Scope, UserId
from ..entities import RoleIdentity, RoleRecord

logger = logging.getLogger(__name__)


class InMemoryRoleRecordRepository:
    """Dict-backed implementation of RoleRecordRepository.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self._records: Dict[RoleIdentity, RoleRecord] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _identity(user_id: UserId, role_kind: RoleKind, scope: Scope) -> RoleIdentity:
        scope = scope.identity()
        return (user_id, role_kind, scope.community_id, scope.group_id)

    async def list_active_for_user(self, user_id: UserId) -> List[RoleRecord]:
        return [
            copy.deepcopy(record)
            for record in self._records.values()
            if record.subject_user_id == user_id and record.is_active
        ]

    async def find(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> Optional[RoleRecord]:
        record = self._records.get(self._identity(user_id, role_kind, scope))
        return copy.deepcopy(record) if record else None

    async def insert(self, record: RoleRecord) -> RoleRecord:
        async with self._lock:
            if record.identity in self._records:
                raise ConflictError(
                    f"Role record already exists: {record}",
                    details={"identity": [str(part) if part else None for part in record.identity]},
                )
            self._records[record.identity] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def update(self, record: RoleRecord) -> RoleRecord:
        async with self._lock:
            stored_identity = next(
                (identity for identity, stored in self._records.items() if stored.id == record.id),
                None,
            )
            if stored_identity is None:
                raise RoleNotFoundError(f"Role record not found: {record.id}")
            if stored_identity != record.identity and record.identity in self._records:
                raise ConflictError(f"Role record already exists: {record}")
            del self._records[stored_identity]
            self._records[record.identity] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def list_by_kind(
        self,
        role_kind: RoleKind,
        is_active: bool = True,
        verification_status: Optional[VerificationStatus] = None,
    ) -> List[RoleRecord]:
        records = [
            record for record in self._records.values()
            if record.role_kind == role_kind
            and record.is_active == is_active
            and (verification_status is None or record.verification_status == verification_status)
        ]
        records.sort(key=lambda r: r.granted_at, reverse=True)
        return [copy.deepcopy(record) for record in records]
