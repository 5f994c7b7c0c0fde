"""Redis cache for users' active role records.

A cache failure is logged and reported as a miss so the caller falls back to
the store. It never turns into an allow.

Fills are guarded by a per-user generation counter kept under a sibling key.
Invalidation bumps it with INCR before deleting the entry, and a fill only
lands (checked atomically in a Lua script) while the generation still equals
the one read before the store load.
"""

import json
import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ....config.constants import CacheKeys, CacheTTL
from ....core.value_objects import UserId
from ..entities import RoleRecord

logger = logging.getLogger(__name__)


# KEYS[1] entry, KEYS[2] generation; ARGV[1] expected generation, ARGV[2] payload, ARGV[3] ttl
SET_IF_GENERATION_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[2]) or '0')
if current ~= tonumber(ARGV[1]) then
    return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'EX', ARGV[3])
return 1
"""


class RedisRoleRecordCache:
    """redis.asyncio implementation of RoleRecordCache."""

    def __init__(self, redis_client: redis.Redis, default_ttl: int = CacheTTL.ROLES_SHORT):
        self.redis_client = redis_client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, default_ttl: int = CacheTTL.ROLES_SHORT) -> 'RedisRoleRecordCache':
        """Build a cache with its own client from a redis URL."""
        return cls(redis.Redis.from_url(url, decode_responses=True), default_ttl)

    @staticmethod
    def _key(user_id: UserId) -> str:
        return CacheKeys.USER_ROLES.format(user_id=user_id)

    @staticmethod
    def _generation_key(user_id: UserId) -> str:
        return CacheKeys.USER_ROLES_GENERATION.format(user_id=user_id)

    async def get_user_roles(self, user_id: UserId) -> Optional[List[RoleRecord]]:
        """Get cached active records, or None on a miss or cache failure."""
        try:
            raw = await self.redis_client.get(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Role cache read failed for user {user_id}: {e}")
            return None

        if raw is None:
            return None

        try:
            return [RoleRecord.from_dict(item) for item in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable role cache entry for user {user_id}: {e}")
            await self.invalidate_user_roles(user_id)
            return None

    async def get_generation(self, user_id: UserId) -> Optional[int]:
        """Get the user's generation (0 if never invalidated), or None on failure."""
        try:
            raw = await self.redis_client.get(self._generation_key(user_id))
            return int(raw) if raw is not None else 0
        except (RedisError, ValueError) as e:
            logger.warning(f"Role cache generation read failed for user {user_id}: {e}")
            return None

    async def set_user_roles(
        self,
        user_id: UserId,
        records: List[RoleRecord],
        generation: int,
        ttl: Optional[int] = None,
    ) -> bool:
        """Cache a user's active records unless an invalidation happened since ``generation``."""
        payload = json.dumps([record.to_dict() for record in records])
        try:
            stored = await self.redis_client.eval(
                SET_IF_GENERATION_SCRIPT,
                2,
                self._key(user_id),
                self._generation_key(user_id),
                generation,
                payload,
                ttl or self.default_ttl,
            )
        except RedisError as e:
            logger.warning(f"Role cache write failed for user {user_id}: {e}")
            return False

        if not stored:
            logger.debug(f"Skipped stale role cache fill for user {user_id} (generation {generation})")
        return bool(stored)

    async def invalidate_user_roles(self, user_id: UserId) -> bool:
        """Bump the user's generation, then drop the cached records."""
        try:
            await self.redis_client.incr(self._generation_key(user_id))
            await self.redis_client.delete(self._key(user_id))
            return True
        except RedisError as e:
            logger.error(f"Role cache invalidation failed for user {user_id}: {e}")
            return False
