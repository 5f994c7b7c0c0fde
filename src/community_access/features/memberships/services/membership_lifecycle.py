"""Membership lifecycle service.

Runs the membership state machine against the store. Each transition:

1. loads the group and a snapshot of the record,
2. takes the per-record lock and re-reads the record,
3. validates the event against the current status (pure),
4. commits the new record and the member counter delta as one unit,
   compare-and-swapped on the status it validated against.

A concurrent transition that got there first leaves the loser with
InvalidTransitionError and no side effect. The counter moves exactly once
per accepted transition.
"""

import logging
from typing import Callable, List, Optional

from ....config.constants import GroupRole, MembershipEvent, MembershipStatus
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import (
    ConflictError,
    ForbiddenError,
    GroupNotFoundError,
    InvalidTransitionError,
    MembershipNotFoundError,
)
from ....core.value_objects import GroupId, UserId
from ...groups.entities import Group, GroupDirectory
from ..entities import DELETING_EVENTS, MembershipRecord, MembershipRepository, counter_delta
from .record_locks import KeyedLock

logger = logging.getLogger(__name__)


_CREATOR_IMMUNE_EVENTS = (MembershipEvent.LEAVE, MembershipEvent.BAN)


class MembershipLifecycle:
    """Service applying membership transitions with their counter side effects."""

    def __init__(
        self,
        repository: MembershipRepository,
        group_directory: GroupDirectory,
        settings: Optional[AccessSettings] = None,
    ):
        self.repository = repository
        self.group_directory = group_directory
        self.settings = settings or get_settings()
        self._locks = KeyedLock()

    async def _load_group(self, group_id: GroupId) -> Group:
        group = await self.group_directory.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}", details={"group_id": str(group_id)})
        return group

    @staticmethod
    def _not_found(group_id: GroupId, user_id: UserId) -> MembershipNotFoundError:
        return MembershipNotFoundError(
            f"Membership not found for user {user_id} in group {group_id}",
            details={"group_id": str(group_id), "user_id": str(user_id)},
        )

    async def _transition(
        self,
        group_id: GroupId,
        user_id: UserId,
        event: MembershipEvent,
        apply: Optional[Callable[[MembershipRecord, Group], int]] = None,
    ) -> Optional[MembershipRecord]:
        """Apply ``event`` to an existing record.

        A record that is absent before the lock is taken raises
        MembershipNotFoundError, including one a concurrent reject or
        withdraw already deleted. A record that changes or disappears while
        waiting for the lock raises InvalidTransitionError.
        """
        group = await self._load_group(group_id)

        if event in _CREATOR_IMMUNE_EVENTS and group.is_creator(user_id):
            raise ForbiddenError(
                f"Group creator cannot {event.value} group {group_id}",
                details={"group_id": str(group_id), "user_id": str(user_id), "event": event.value},
            )

        snapshot = await self.repository.get(group_id, user_id)
        if snapshot is None:
            raise self._not_found(group_id, user_id)

        async with self._locks.hold((group_id, user_id)):
            current = await self.repository.get(group_id, user_id)
            if current is None or current.status != snapshot.status:
                raise InvalidTransitionError(
                    f"Membership of user {user_id} in group {group_id} changed concurrently",
                    current_status=current.status.value if current else None,
                    event=event.value,
                )

            expected = current.status
            current.require(event)

            if event in DELETING_EVENTS:
                await self.repository.delete_transition(group_id, user_id, expected)
                logger.info(f"Membership {event.value}: user {user_id} in group {group_id} ({expected.value} -> deleted)")
                return None

            delta = apply(current, group)
            record = await self.repository.commit_transition(current, expected, delta)

        logger.info(
            f"Membership {event.value}: user {user_id} in group {group_id} "
            f"({expected.value} -> {record.status.value}, member_count {delta:+d})"
        )
        return record

    async def request_join(
        self,
        group_id: GroupId,
        user_id: UserId,
        message: Optional[str] = None,
    ) -> MembershipRecord:
        """Join a group, or rejoin it after leaving.

        Public groups activate immediately; private and secret groups create
        a pending request. The group creator always joins as an active admin.
        Joining while pending, active or banned is an InvalidTransitionError.
        """
        group = await self._load_group(group_id)

        async with self._locks.hold((group_id, user_id)):
            current = await self.repository.get(group_id, user_id)

            if current is None:
                if group.is_creator(user_id):
                    record = MembershipRecord.for_creator(group.id, user_id)
                else:
                    record = MembershipRecord.join(group_id, user_id, group.requires_approval, message)
                delta = counter_delta(None, record.status)
                try:
                    record = await self.repository.create(record, delta)
                except ConflictError:
                    raise InvalidTransitionError(
                        f"Membership of user {user_id} in group {group_id} was created concurrently",
                        event=MembershipEvent.JOIN.value,
                    )
                logger.info(
                    f"Membership join: user {user_id} in group {group_id} "
                    f"(-> {record.status.value}, member_count {delta:+d})"
                )
                return record

            if current.status != MembershipStatus.LEFT:
                raise InvalidTransitionError(
                    f"User {user_id} cannot join group {group_id} while {current.status.value}",
                    current_status=current.status.value,
                    event=MembershipEvent.JOIN.value,
                )

            expected = current.status
            delta = current.rejoin(group.requires_approval, message)
            record = await self.repository.commit_transition(current, expected, delta)

        logger.info(
            f"Membership rejoin: user {user_id} in group {group_id} "
            f"(left -> {record.status.value}, member_count {delta:+d})"
        )
        return record

    async def approve_join(self, group_id: GroupId, user_id: UserId, approver_id: UserId) -> MembershipRecord:
        """Approve a pending join request."""
        return await self._transition(
            group_id, user_id, MembershipEvent.APPROVE,
            lambda record, group: record.approve(approver_id),
        )

    async def reject_join(self, group_id: GroupId, user_id: UserId, rejecter_id: UserId) -> None:
        """Reject a pending join request; the record is deleted."""
        await self._transition(group_id, user_id, MembershipEvent.REJECT)
        logger.debug(f"Join request of {user_id} in group {group_id} rejected by {rejecter_id}")

    async def withdraw_request(self, group_id: GroupId, user_id: UserId) -> None:
        """Withdraw one's own pending join request."""
        await self._transition(group_id, user_id, MembershipEvent.WITHDRAW)

    async def leave_group(self, group_id: GroupId, user_id: UserId) -> MembershipRecord:
        """Leave a group. The creator cannot leave."""
        return await self._transition(
            group_id, user_id, MembershipEvent.LEAVE,
            lambda record, group: record.leave(),
        )

    async def ban_member(
        self,
        group_id: GroupId,
        user_id: UserId,
        banner_id: UserId,
        reason: Optional[str] = None,
    ) -> MembershipRecord:
        """Ban an active member. The creator cannot be banned."""
        return await self._transition(
            group_id, user_id, MembershipEvent.BAN,
            lambda record, group: record.ban(banner_id, reason),
        )

    async def unban_member(self, group_id: GroupId, user_id: UserId, unbanner_id: UserId) -> MembershipRecord:
        """Lift a ban; the user becomes active again."""
        record = await self._transition(
            group_id, user_id, MembershipEvent.UNBAN,
            lambda record, group: record.unban(),
        )
        logger.debug(f"User {user_id} in group {group_id} unbanned by {unbanner_id}")
        return record

    async def register_creator(self, group_id: GroupId) -> MembershipRecord:
        """Create the creator's admin membership for a newly created group."""
        group = await self._load_group(group_id)
        record = MembershipRecord.for_creator(group.id, group.created_by)
        async with self._locks.hold(record.key):
            record = await self.repository.create(record, counter_delta(None, record.status))
        logger.info(f"Registered creator {group.created_by} as admin of group {group_id}")
        return record

    async def change_member_role(
        self,
        group_id: GroupId,
        user_id: UserId,
        role: GroupRole,
        changed_by: Optional[UserId] = None,
    ) -> MembershipRecord:
        """Change an active member's group-local role. The creator stays admin."""
        group = await self._load_group(group_id)
        role = GroupRole(role)
        if group.is_creator(user_id) and role != GroupRole.ADMIN:
            raise ForbiddenError(
                f"Group creator cannot be removed from the admin role of group {group_id}",
                details={"group_id": str(group_id), "user_id": str(user_id), "role": role.value},
            )

        async with self._locks.hold((group_id, user_id)):
            current = await self.repository.get(group_id, user_id)
            if current is None:
                raise self._not_found(group_id, user_id)
            expected = current.status
            previous_role = current.role
            current.change_role(role)
            record = await self.repository.commit_transition(current, expected, 0)

        logger.info(
            f"Changed role of user {user_id} in group {group_id} from {previous_role.value} "
            f"to {role.value} (by {changed_by})"
        )
        return record

    # Queries

    async def get_membership(self, group_id: GroupId, user_id: UserId) -> Optional[MembershipRecord]:
        return await self.repository.get(group_id, user_id)

    async def list_members(self, group_id: GroupId) -> List[MembershipRecord]:
        """Active members of a group."""
        return await self.repository.list_by_group(group_id, MembershipStatus.ACTIVE)

    async def list_pending_requests(self, group_id: GroupId) -> List[MembershipRecord]:
        return await self.repository.list_by_group(group_id, MembershipStatus.PENDING)

    async def list_banned(self, group_id: GroupId) -> List[MembershipRecord]:
        return await self.repository.list_by_group(group_id, MembershipStatus.BANNED)
