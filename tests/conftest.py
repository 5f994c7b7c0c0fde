"""Pytest configuration and fixtures for community-access tests."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from community_access.config import AccessSettings, GroupType
from community_access.core.value_objects import CommunityId, GroupId, UserId
from community_access.features.groups import (
    Group,
    InMemoryCommunityDirectory,
    InMemoryGroupDirectory,
)
from community_access.features.roles import InMemoryRoleRecordRepository, RoleService
from community_access.features.memberships import InMemoryMembershipRepository, MembershipLifecycle
from community_access.features.authorization import AuthorizationGate, CommunityAccessService


@pytest.fixture
def settings():
    """Settings independent of the environment."""
    return AccessSettings(
        role_cache_enabled=True,
        role_cache_ttl=300,
        community_moderators_moderate_groups=True,
    )


@pytest.fixture
def community_id():
    return CommunityId.generate()


@pytest.fixture
def other_community_id():
    return CommunityId.generate()


@pytest.fixture
def creator_id():
    """Creator of both sample groups."""
    return UserId.generate()


@pytest.fixture
def user_id():
    return UserId.generate()


@pytest.fixture
def moderator_id():
    return UserId.generate()


@pytest.fixture
def public_group(community_id, creator_id):
    return Group(
        id=GroupId.generate(),
        community_id=community_id,
        created_by=creator_id,
        group_type=GroupType.PUBLIC,
        title="Sleep Training",
    )


@pytest.fixture
def private_group(community_id, creator_id):
    return Group(
        id=GroupId.generate(),
        community_id=community_id,
        created_by=creator_id,
        group_type=GroupType.PRIVATE,
        title="Single Parents",
    )


@pytest.fixture
def group_directory(public_group, private_group):
    return InMemoryGroupDirectory([public_group, private_group])


@pytest.fixture
def community_directory(community_id, other_community_id):
    return InMemoryCommunityDirectory([community_id, other_community_id])


@pytest.fixture
def role_repository():
    return InMemoryRoleRecordRepository()


@pytest.fixture
def mock_role_cache():
    """Role cache double that always misses."""
    cache = AsyncMock()
    cache.get_user_roles = AsyncMock(return_value=None)
    cache.get_generation = AsyncMock(return_value=0)
    cache.set_user_roles = AsyncMock(return_value=True)
    cache.invalidate_user_roles = AsyncMock(return_value=True)
    return cache


@pytest.fixture
def role_service(role_repository, group_directory, community_directory, settings):
    return RoleService(role_repository, group_directory, community_directory, settings=settings)


@pytest.fixture
def membership_repository(group_directory):
    return InMemoryMembershipRepository(group_directory)


@pytest.fixture
def lifecycle(membership_repository, group_directory, settings):
    return MembershipLifecycle(membership_repository, group_directory, settings=settings)


@pytest.fixture
def gate(role_service, lifecycle, settings):
    return AuthorizationGate(role_service, lifecycle, settings=settings)


@pytest.fixture
def access_service(role_service, lifecycle, gate, settings):
    return CommunityAccessService(role_service, lifecycle, gate=gate, settings=settings)


@pytest_asyncio.fixture
async def registered_groups(lifecycle, public_group, private_group):
    """Both sample groups with their creator registered as admin (member_count 1)."""
    await lifecycle.register_creator(public_group.id)
    await lifecycle.register_creator(private_group.id)
    return public_group, private_group


@pytest.fixture
def pg_transaction():
    """Transaction context; ``__aexit__`` sees the exception that rolled it back."""
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=False)
    return transaction


@pytest.fixture
def pg_connection(pg_transaction):
    conn = AsyncMock()
    conn.transaction = MagicMock(return_value=pg_transaction)
    return conn


@pytest.fixture
def pg_pool(pg_connection):
    """asyncpg pool double whose ``acquire()`` yields ``pg_connection``."""
    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=pg_connection)
    acquire.__aexit__ = AsyncMock(return_value=False)
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=acquire)
    return pool
