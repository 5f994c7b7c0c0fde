"""Value objects for identifiers in community-access.

Immutable, hashable identifiers for users, communities and groups. Each one
accepts a UUID or its string form and refuses anything else.
"""

from dataclasses import dataclass
from uuid import UUID

from ...utils import generate_uuid_v7


def _coerce_uuid(owner: object, name: str) -> None:
    value = owner.value
    if isinstance(value, UUID):
        return
    try:
        object.__setattr__(owner, 'value', UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        raise ValueError(f"{name} must be a valid UUID, got: {value!r}")


@dataclass(frozen=True)
class UserId:
    """User identifier value object with UUIDv7 support."""
    value: UUID

    def __post_init__(self):
        _coerce_uuid(self, "UserId")

    @classmethod
    def generate(cls) -> 'UserId':
        """Generate a new UserId using UUIDv7 for time-ordering."""
        return cls(generate_uuid_v7())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class CommunityId:
    """Community identifier value object."""
    value: UUID

    def __post_init__(self):
        _coerce_uuid(self, "CommunityId")

    @classmethod
    def generate(cls) -> 'CommunityId':
        return cls(generate_uuid_v7())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class GroupId:
    """Group identifier value object."""
    value: UUID

    def __post_init__(self):
        _coerce_uuid(self, "GroupId")

    @classmethod
    def generate(cls) -> 'GroupId':
        return cls(generate_uuid_v7())

    def __str__(self) -> str:
        return str(self.value)
