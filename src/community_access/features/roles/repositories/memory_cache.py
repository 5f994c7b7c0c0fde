"""In-memory RoleRecordCache for tests and single-process embedding."""

import asyncio
import copy
import logging
import time
from typing import Dict, List, Optional, Tuple

from ....config.constants import CacheTTL
from ....core.value_objects import UserId
from ..entities import RoleRecord

logger = logging.getLogger(__name__)


class InMemoryRoleRecordCache:
    """Dict-backed implementation of RoleRecordCache with per-entry expiry."""

    def __init__(self, default_ttl: int = CacheTTL.ROLES_SHORT):
        if default_ttl <= 0:
            raise ValueError("Default TTL must be positive")

        self.default_ttl = default_ttl
        # user_id -> (expires_at, records)
        self._entries: Dict[UserId, Tuple[float, List[RoleRecord]]] = {}
        self._generations: Dict[UserId, int] = {}
        self._lock = asyncio.Lock()

    async def get_user_roles(self, user_id: UserId) -> Optional[List[RoleRecord]]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None

        expires_at, records = entry
        if expires_at <= time.monotonic():
            self._entries.pop(user_id, None)
            return None
        return copy.deepcopy(records)

    async def get_generation(self, user_id: UserId) -> Optional[int]:
        return self._generations.get(user_id, 0)

    async def set_user_roles(
        self,
        user_id: UserId,
        records: List[RoleRecord],
        generation: int,
        ttl: Optional[int] = None,
    ) -> bool:
        async with self._lock:
            if self._generations.get(user_id, 0) != generation:
                logger.debug(f"Skipped stale role cache fill for user {user_id} (generation {generation})")
                return False
            expires_at = time.monotonic() + (ttl or self.default_ttl)
            self._entries[user_id] = (expires_at, copy.deepcopy(records))
        return True

    async def invalidate_user_roles(self, user_id: UserId) -> bool:
        async with self._lock:
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
            self._entries.pop(user_id, None)
        return True
