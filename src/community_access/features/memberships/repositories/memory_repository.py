"""In-memory MembershipRepository for tests and embedding."""

import asyncio
import copy
import logging
from typing import Dict, List, Optional

from ....config.constants import MembershipStatus
from ....core.exceptions import ConflictError, InvalidTransitionError
from ....core.value_objects import GroupId, UserId
from ...groups.entities import GroupDirectory
from ..entities import MembershipKey, MembershipRecord

logger = logging.getLogger(__name__)


class InMemoryMembershipRepository:
    """Dict-backed MembershipRepository.

    The record write and the group counter update happen under one lock; a
    failed counter update restores the previous record before re-raising.
    """

    def __init__(self, group_directory: GroupDirectory):
        self.group_directory = group_directory
        self._records: Dict[MembershipKey, MembershipRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, group_id: GroupId, user_id: UserId) -> Optional[MembershipRecord]:
        record = self._records.get((group_id, user_id))
        return copy.deepcopy(record) if record else None

    async def create(self, record: MembershipRecord, counter_delta: int = 0) -> MembershipRecord:
        async with self._lock:
            if record.key in self._records:
                raise ConflictError(
                    f"Membership already exists for user {record.user_id} in group {record.group_id}",
                    details={"group_id": str(record.group_id), "user_id": str(record.user_id)},
                )
            self._records[record.key] = copy.deepcopy(record)
            if counter_delta:
                try:
                    await self.group_directory.adjust_member_count(record.group_id, counter_delta)
                except Exception:
                    del self._records[record.key]
                    raise
        return copy.deepcopy(record)

    def _require_status(
        self,
        group_id: GroupId,
        user_id: UserId,
        expected_status: MembershipStatus,
    ) -> MembershipRecord:
        stored = self._records.get((group_id, user_id))
        if stored is None or stored.status != expected_status:
            current = stored.status.value if stored else None
            raise InvalidTransitionError(
                f"Membership of user {user_id} in group {group_id} is no longer {expected_status.value}",
                current_status=current,
                details={"expected_status": expected_status.value},
            )
        return stored

    async def commit_transition(
        self,
        record: MembershipRecord,
        expected_status: MembershipStatus,
        counter_delta: int = 0,
    ) -> MembershipRecord:
        async with self._lock:
            previous = self._require_status(record.group_id, record.user_id, expected_status)
            self._records[record.key] = copy.deepcopy(record)
            if counter_delta:
                try:
                    await self.group_directory.adjust_member_count(record.group_id, counter_delta)
                except Exception:
                    self._records[record.key] = previous
                    raise
        return copy.deepcopy(record)

    async def delete_transition(
        self,
        group_id: GroupId,
        user_id: UserId,
        expected_status: MembershipStatus,
    ) -> None:
        async with self._lock:
            self._require_status(group_id, user_id, expected_status)
            del self._records[(group_id, user_id)]

    async def list_by_group(
        self,
        group_id: GroupId,
        status: Optional[MembershipStatus] = None,
    ) -> List[MembershipRecord]:
        records = [
            record for record in self._records.values()
            if record.group_id == group_id and (status is None or record.status == status)
        ]
        records.sort(key=lambda r: r.joined_at)
        return [copy.deepcopy(record) for record in records]

    async def count_active(self, group_id: GroupId) -> int:
        return sum(
            1 for record in self._records.values()
            if record.group_id == group_id and record.status == MembershipStatus.ACTIVE
        )
