"""Protocol interfaces for the roles feature.

Defines the contracts for role record storage and the optional per-user
role record cache.
"""

from abc import abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from ....config.constants import RoleKind, VerificationStatus
from ....core.value_objects import Scope, UserId
from .role_record import RoleRecord


@runtime_checkable
class RoleRecordRepository(Protocol):
    """Protocol for role record persistence.

    Implementations raise TransientStoreError when the store fails or times
    out; they never return a partial result.
    """

    @abstractmethod
    async def list_active_for_user(self, user_id: UserId) -> List[RoleRecord]:
        """Get all active role records for a user."""
        ...

    @abstractmethod
    async def find(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> Optional[RoleRecord]:
        """Get the record with this identity, active or not."""
        ...

    @abstractmethod
    async def insert(self, record: RoleRecord) -> RoleRecord:
        """Store a new record; raises ConflictError if the identity exists."""
        ...

    @abstractmethod
    async def update(self, record: RoleRecord) -> RoleRecord:
        """Persist changes to an existing record."""
        ...

    @abstractmethod
    async def list_by_kind(
        self,
        role_kind: RoleKind,
        is_active: bool = True,
        verification_status: Optional[VerificationStatus] = None,
    ) -> List[RoleRecord]:
        """Get records of a kind, optionally filtered by verification status."""
        ...


@runtime_checkable
class RoleRecordCache(Protocol):
    """Protocol for caching a user's active role records.

    Each user has a generation that every invalidation bumps. A fill carries
    the generation read before the store load and is dropped if the
    generation moved in between, so a load that raced a revoke never writes
    the revoked grant back.
    """

    @abstractmethod
    async def get_user_roles(self, user_id: UserId) -> Optional[List[RoleRecord]]:
        """Get cached active records, or None on a miss."""
        ...

    @abstractmethod
    async def get_generation(self, user_id: UserId) -> Optional[int]:
        """Get the user's current generation, or None if it cannot be read."""
        ...

    @abstractmethod
    async def set_user_roles(
        self,
        user_id: UserId,
        records: List[RoleRecord],
        generation: int,
        ttl: Optional[int] = None,
    ) -> bool:
        """Cache a user's active records if the generation is still ``generation``."""
        ...

    @abstractmethod
    async def invalidate_user_roles(self, user_id: UserId) -> bool:
        """Bump the user's generation and drop the cached records."""
        ...
