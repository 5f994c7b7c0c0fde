"""MembershipRecord domain entity and the membership state machine.

One record exists per (group, user); its status carries the history.
Transition methods are pure: they check the event is legal from the current
status, mutate the record and return the member counter delta the commit
must apply. Nothing here touches a store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple

from ....config.constants import (
    FieldLimits,
    GroupRole,
    MembershipEvent,
    MembershipStatus,
)
from ....core.exceptions import InvalidTransitionError, ValidationError
from ....core.value_objects import GroupId, UserId
from ....utils import utc_now


MembershipKey = Tuple[GroupId, UserId]


# Events legal from each status. A join on a missing record is handled by
# MembershipRecord.join; a deleted record has no status.
ALLOWED_EVENTS: Dict[MembershipStatus, FrozenSet[MembershipEvent]] = {
    MembershipStatus.PENDING: frozenset({
        MembershipEvent.APPROVE,
        MembershipEvent.REJECT,
        MembershipEvent.WITHDRAW,
    }),
    MembershipStatus.ACTIVE: frozenset({
        MembershipEvent.LEAVE,
        MembershipEvent.BAN,
    }),
    MembershipStatus.BANNED: frozenset({
        MembershipEvent.UNBAN,
    }),
    MembershipStatus.LEFT: frozenset({
        MembershipEvent.REJOIN,
    }),
}

# Events that remove the record instead of changing its status
DELETING_EVENTS: FrozenSet[MembershipEvent] = frozenset({
    MembershipEvent.REJECT,
    MembershipEvent.WITHDRAW,
})


def counter_delta(
    old_status: Optional[MembershipStatus],
    new_status: Optional[MembershipStatus],
) -> int:
    """Member counter change implied by a status change (None = no record)."""
    was_active = old_status == MembershipStatus.ACTIVE
    is_active = new_status == MembershipStatus.ACTIVE
    return int(is_active) - int(was_active)


def _check_length(value: Optional[str], limit: int, name: str) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(
            f"{name} cannot exceed {limit} characters",
            details={"field": name, "max_length": limit, "length": len(value)},
        )


@dataclass
class MembershipRecord:
    """Domain entity for a user's membership in a group."""

    group_id: GroupId
    user_id: UserId
    status: MembershipStatus
    role: GroupRole = GroupRole.MEMBER
    joined_at: datetime = field(default_factory=utc_now)
    approved_at: Optional[datetime] = None
    approved_by: Optional[UserId] = None
    banned_at: Optional[datetime] = None
    banned_by: Optional[UserId] = None
    ban_reason: Optional[str] = None
    left_at: Optional[datetime] = None
    request_message: Optional[str] = None
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = MembershipStatus(self.status)
        if isinstance(self.role, str):
            self.role = GroupRole(self.role)
        _check_length(self.request_message, FieldLimits.REQUEST_MESSAGE, "request_message")
        _check_length(self.ban_reason, FieldLimits.BAN_REASON, "ban_reason")

    @property
    def key(self) -> MembershipKey:
        return (self.group_id, self.user_id)

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    @property
    def is_pending(self) -> bool:
        return self.status == MembershipStatus.PENDING

    @property
    def is_banned(self) -> bool:
        return self.status == MembershipStatus.BANNED

    @property
    def can_moderate(self) -> bool:
        """Active admins and moderators moderate their group."""
        return self.is_active and self.role in (GroupRole.ADMIN, GroupRole.MODERATOR)

    # Construction

    @classmethod
    def join(
        cls,
        group_id: GroupId,
        user_id: UserId,
        requires_approval: bool,
        message: Optional[str] = None,
    ) -> 'MembershipRecord':
        """Create the record for a first join.

        Public groups activate immediately with the joiner as approver;
        private and secret groups hold the request as pending.
        """
        now = utc_now()
        if requires_approval:
            return cls(
                group_id=group_id,
                user_id=user_id,
                status=MembershipStatus.PENDING,
                joined_at=now,
                request_message=message,
                updated_at=now,
            )
        return cls(
            group_id=group_id,
            user_id=user_id,
            status=MembershipStatus.ACTIVE,
            joined_at=now,
            approved_at=now,
            approved_by=user_id,
            request_message=message,
            updated_at=now,
        )

    @classmethod
    def for_creator(cls, group_id: GroupId, creator_id: UserId) -> 'MembershipRecord':
        """Active admin record for a group's creator."""
        now = utc_now()
        return cls(
            group_id=group_id,
            user_id=creator_id,
            status=MembershipStatus.ACTIVE,
            role=GroupRole.ADMIN,
            joined_at=now,
            approved_at=now,
            approved_by=creator_id,
            updated_at=now,
        )

    # Transitions

    def allows(self, event: MembershipEvent) -> bool:
        return event in ALLOWED_EVENTS.get(self.status, frozenset())

    def require(self, event: MembershipEvent) -> None:
        """Raise InvalidTransitionError unless ``event`` is legal from the current status."""
        if not self.allows(event):
            raise InvalidTransitionError(
                f"Cannot {event.value} membership of user {self.user_id} in group {self.group_id} "
                f"from status {self.status.value}",
                current_status=self.status.value,
                event=event.value,
            )

    def approve(self, approver_id: UserId) -> int:
        self.require(MembershipEvent.APPROVE)
        now = utc_now()
        self.status = MembershipStatus.ACTIVE
        self.approved_at = now
        self.approved_by = approver_id
        self.updated_at = now
        return 1

    def leave(self) -> int:
        self.require(MembershipEvent.LEAVE)
        now = utc_now()
        self.status = MembershipStatus.LEFT
        self.left_at = now
        self.updated_at = now
        return -1

    def ban(self, banner_id: UserId, reason: Optional[str] = None) -> int:
        self.require(MembershipEvent.BAN)
        _check_length(reason, FieldLimits.BAN_REASON, "ban_reason")
        now = utc_now()
        self.status = MembershipStatus.BANNED
        self.banned_at = now
        self.banned_by = banner_id
        self.ban_reason = reason
        self.updated_at = now
        return -1

    def unban(self) -> int:
        self.require(MembershipEvent.UNBAN)
        self.status = MembershipStatus.ACTIVE
        self.banned_at = None
        self.banned_by = None
        self.ban_reason = None
        self.updated_at = utc_now()
        return 1

    def rejoin(self, requires_approval: bool, message: Optional[str] = None) -> int:
        """Re-enter a group after leaving; the role resets to member."""
        self.require(MembershipEvent.REJOIN)
        _check_length(message, FieldLimits.REQUEST_MESSAGE, "request_message")
        now = utc_now()
        self.role = GroupRole.MEMBER
        self.left_at = None
        self.joined_at = now
        self.request_message = message
        self.updated_at = now
        if requires_approval:
            self.status = MembershipStatus.PENDING
            self.approved_at = None
            self.approved_by = None
            return 0
        self.status = MembershipStatus.ACTIVE
        self.approved_at = now
        self.approved_by = self.user_id
        return 1

    def change_role(self, role: GroupRole) -> None:
        """Change the group-local role of an active member."""
        if not self.is_active:
            raise InvalidTransitionError(
                f"Cannot change role of user {self.user_id} in group {self.group_id} "
                f"from status {self.status.value}",
                current_status=self.status.value,
                event="change_role",
            )
        self.role = GroupRole(role)
        self.updated_at = utc_now()

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        def _dt(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "group_id": str(self.group_id),
            "user_id": str(self.user_id),
            "status": self.status.value,
            "role": self.role.value,
            "joined_at": _dt(self.joined_at),
            "approved_at": _dt(self.approved_at),
            "approved_by": str(self.approved_by) if self.approved_by else None,
            "banned_at": _dt(self.banned_at),
            "banned_by": str(self.banned_by) if self.banned_by else None,
            "ban_reason": self.ban_reason,
            "left_at": _dt(self.left_at),
            "request_message": self.request_message,
            "updated_at": _dt(self.updated_at),
        }

    def __str__(self) -> str:
        return f"Membership({self.user_id}@{self.group_id}: {self.status.value}/{self.role.value})"
