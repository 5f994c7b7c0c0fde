"""Protocol interfaces for membership storage."""

from abc import abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from ....config.constants import MembershipStatus
from ....core.value_objects import GroupId, UserId
from .membership import MembershipRecord


@runtime_checkable
class MembershipRepository(Protocol):
    """Store for membership records.

    Every write that changes whether a record is active takes the counter
    delta and applies it to the group in the same atomic unit. Writes are
    compare-and-swap on the stored status: when the stored status is not the
    expected one (or the record is gone) they raise InvalidTransitionError and
    change nothing.
    """

    @abstractmethod
    async def get(self, group_id: GroupId, user_id: UserId) -> Optional[MembershipRecord]:
        """Get a membership record, or None."""
        ...

    @abstractmethod
    async def create(self, record: MembershipRecord, counter_delta: int = 0) -> MembershipRecord:
        """Insert a new record; ConflictError if one exists for (group, user)."""
        ...

    @abstractmethod
    async def commit_transition(
        self,
        record: MembershipRecord,
        expected_status: MembershipStatus,
        counter_delta: int = 0,
    ) -> MembershipRecord:
        """Replace a record whose stored status is still ``expected_status``."""
        ...

    @abstractmethod
    async def delete_transition(
        self,
        group_id: GroupId,
        user_id: UserId,
        expected_status: MembershipStatus,
    ) -> None:
        """Delete a record whose stored status is still ``expected_status``."""
        ...

    @abstractmethod
    async def list_by_group(
        self,
        group_id: GroupId,
        status: Optional[MembershipStatus] = None,
    ) -> List[MembershipRecord]:
        """Records of a group, optionally filtered by status, oldest join first."""
        ...

    @abstractmethod
    async def count_active(self, group_id: GroupId) -> int:
        """Number of active records in a group."""
        ...
