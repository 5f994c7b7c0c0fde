"""Tests for the Redis role record cache."""

import json

import pytest
from unittest.mock import AsyncMock
from redis.exceptions import ConnectionError as RedisConnectionError

from community_access.config import RoleKind
from community_access.core.value_objects import CommunityId, Scope
from community_access.features.roles import RedisRoleRecordCache, RoleRecord
from community_access.features.roles.repositories.redis_cache import SET_IF_GENERATION_SCRIPT


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.eval = AsyncMock(return_value=1)
    client.incr = AsyncMock(return_value=1)
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def cache(redis_client):
    return RedisRoleRecordCache(redis_client, default_ttl=120)


@pytest.fixture
def records(user_id):
    return [RoleRecord.grant(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(CommunityId.generate()))]


@pytest.mark.asyncio
async def test_set_is_guarded_by_generation(cache, redis_client, user_id, records):
    assert await cache.set_user_roles(user_id, records, 3)

    script, numkeys, key, generation_key, generation, payload, ttl = redis_client.eval.await_args.args
    assert script == SET_IF_GENERATION_SCRIPT
    assert numkeys == 2
    assert key == f"community_access:roles:{user_id}"
    assert generation_key == f"community_access:roles:{user_id}:generation"
    assert generation == 3
    assert json.loads(payload)[0]["role_kind"] == "community_expert"
    assert ttl == 120


@pytest.mark.asyncio
async def test_set_with_stale_generation_reports_false(cache, redis_client, user_id, records):
    redis_client.eval.return_value = 0
    assert await cache.set_user_roles(user_id, records, 1, ttl=60) is False


@pytest.mark.asyncio
async def test_get_rebuilds_records(cache, redis_client, user_id, records):
    redis_client.get.return_value = json.dumps([record.to_dict() for record in records])
    assert await cache.get_user_roles(user_id) == records


@pytest.mark.asyncio
async def test_miss_returns_none(cache, user_id):
    assert await cache.get_user_roles(user_id) is None


@pytest.mark.asyncio
async def test_read_failure_is_a_miss(cache, redis_client, user_id):
    redis_client.get.side_effect = RedisConnectionError("down")
    assert await cache.get_user_roles(user_id) is None


@pytest.mark.asyncio
async def test_corrupt_entry_is_dropped(cache, redis_client, user_id):
    redis_client.get.return_value = "{not json"
    assert await cache.get_user_roles(user_id) is None
    redis_client.delete.assert_awaited_once_with(f"community_access:roles:{user_id}")


@pytest.mark.asyncio
async def test_generation_defaults_to_zero(cache, redis_client, user_id):
    assert await cache.get_generation(user_id) == 0
    redis_client.get.return_value = "7"
    assert await cache.get_generation(user_id) == 7
    redis_client.get.assert_awaited_with(f"community_access:roles:{user_id}:generation")


@pytest.mark.asyncio
async def test_generation_read_failure_is_none(cache, redis_client, user_id):
    redis_client.get.side_effect = RedisConnectionError("down")
    assert await cache.get_generation(user_id) is None


@pytest.mark.asyncio
async def test_invalidate_bumps_generation_then_deletes(cache, redis_client, user_id):
    assert await cache.invalidate_user_roles(user_id)
    redis_client.incr.assert_awaited_once_with(f"community_access:roles:{user_id}:generation")
    redis_client.delete.assert_awaited_once_with(f"community_access:roles:{user_id}")


@pytest.mark.asyncio
async def test_write_and_invalidate_failures_report_false(cache, redis_client, user_id, records):
    redis_client.eval.side_effect = RedisConnectionError("down")
    redis_client.incr.side_effect = RedisConnectionError("down")
    assert await cache.set_user_roles(user_id, records, 0) is False
    assert await cache.invalidate_user_roles(user_id) is False


def test_from_url_builds_client():
    cache = RedisRoleRecordCache.from_url("redis://localhost:6379/0", default_ttl=60)
    assert cache.default_ttl == 60
    assert cache.redis_client is not None
