"""Tests for CommunityAccessService authority checks and factories."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from community_access.config import AccessSettings, GroupRole, MembershipStatus, RoleKind, VerificationStatus
from community_access.core.exceptions import ConfigurationError, PermissionDeniedError
from community_access.core.value_objects import Scope, UserId
from community_access.features.authorization import (
    CommunityAccessService,
    create_access_service_from_settings,
    create_in_memory_access_service,
)
from community_access.features.roles import InMemoryRoleRecordCache, RedisRoleRecordCache


class TestMembershipAuthority:
    """Moderation-gated membership transitions."""

    @pytest.mark.asyncio
    async def test_non_moderator_cannot_approve(self, access_service, registered_groups, user_id, moderator_id):
        _, private_group = registered_groups
        await access_service.request_join(private_group.id, user_id, "please")

        with pytest.raises(PermissionDeniedError):
            await access_service.approve_join(private_group.id, user_id, moderator_id)

        record = await access_service.lifecycle.get_membership(private_group.id, user_id)
        assert record.status == MembershipStatus.PENDING

    @pytest.mark.asyncio
    async def test_creator_approves(self, access_service, registered_groups, user_id, creator_id):
        _, private_group = registered_groups
        await access_service.request_join(private_group.id, user_id)
        record = await access_service.approve_join(private_group.id, user_id, creator_id)
        assert record.is_active
        assert record.approved_by == creator_id

    @pytest.mark.asyncio
    async def test_community_moderator_bans_and_unbans(
        self, access_service, registered_groups, user_id, moderator_id, community_id
    ):
        public_group, _ = registered_groups
        await access_service.grant_role(moderator_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        await access_service.request_join(public_group.id, user_id)

        banned = await access_service.ban_member(public_group.id, user_id, moderator_id, "spam")
        assert banned.is_banned
        assert [r.user_id for r in await access_service.list_banned(public_group.id)] == [user_id]

        restored = await access_service.unban_member(public_group.id, user_id, moderator_id)
        assert restored.is_active

    @pytest.mark.asyncio
    async def test_reject_requires_moderation(self, access_service, registered_groups, user_id, creator_id):
        _, private_group = registered_groups
        await access_service.request_join(private_group.id, user_id)

        with pytest.raises(PermissionDeniedError):
            await access_service.reject_join(private_group.id, user_id, user_id)

        await access_service.reject_join(private_group.id, user_id, creator_id)
        assert await access_service.list_pending_requests(private_group.id) == []

    @pytest.mark.asyncio
    async def test_change_member_role_requires_group_admin(
        self, access_service, registered_groups, user_id, moderator_id, creator_id
    ):
        public_group, _ = registered_groups
        await access_service.request_join(public_group.id, user_id)
        await access_service.request_join(public_group.id, moderator_id)

        promoted = await access_service.change_member_role(public_group.id, moderator_id, GroupRole.MODERATOR, creator_id)
        assert promoted.role == GroupRole.MODERATOR

        # A moderator membership moderates but does not manage roles
        with pytest.raises(PermissionDeniedError) as exc_info:
            await access_service.change_member_role(public_group.id, user_id, GroupRole.MODERATOR, moderator_id)
        assert exc_info.value.details["reason"] == "insufficient_role"


class TestGrantAuthority:
    """Who may grant and revoke which role kinds."""

    @pytest.mark.asyncio
    async def test_system_grant_skips_authority(self, access_service, user_id):
        record = await access_service.grant_role(user_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        assert record.is_platform_admin
        assert record.granted_by is None

    @pytest.mark.asyncio
    async def test_platform_admin_grant_needs_admin(self, access_service, user_id, moderator_id):
        with pytest.raises(PermissionDeniedError):
            await access_service.grant_role(user_id, RoleKind.PLATFORM_ADMIN, Scope.platform(), granted_by=moderator_id)

        await access_service.grant_role(moderator_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        record = await access_service.grant_role(
            user_id, RoleKind.PLATFORM_ADMIN, Scope.platform(), granted_by=moderator_id
        )
        assert record.granted_by == moderator_id

    @pytest.mark.asyncio
    async def test_community_moderator_assigns_group_moderators(
        self, access_service, registered_groups, user_id, moderator_id, community_id
    ):
        public_group, _ = registered_groups
        await access_service.grant_role(moderator_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))

        record = await access_service.grant_role(
            user_id, RoleKind.GROUP_MODERATOR, Scope.group(public_group.id), granted_by=moderator_id
        )
        assert record.is_active
        assert await access_service.can_moderate(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_community_moderator_cannot_assign_peers(
        self, access_service, user_id, moderator_id, community_id
    ):
        await access_service.grant_role(moderator_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        with pytest.raises(PermissionDeniedError):
            await access_service.grant_role(
                user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id), granted_by=moderator_id
            )

    @pytest.mark.asyncio
    async def test_expert_role_is_self_grantable(self, access_service, user_id, community_id):
        record = await access_service.grant_role(
            user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id),
            granted_by=user_id,
            credentials="Pediatric nurse",
        )
        assert record.verification_status == VerificationStatus.PENDING
        assert [r.subject_user_id for r in await access_service.list_pending_experts()] == [user_id]

    @pytest.mark.asyncio
    async def test_revoke_requires_authority(self, access_service, user_id, moderator_id, community_id):
        await access_service.grant_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))

        with pytest.raises(PermissionDeniedError):
            await access_service.revoke_role(
                user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id), revoked_by=moderator_id
            )

        await access_service.revoke_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        assert await access_service.get_user_roles(user_id) == []


class TestExpertVerification:
    """Expert verification requires approve_experts in the community."""

    @pytest.mark.asyncio
    async def test_moderator_cannot_verify(self, access_service, user_id, moderator_id, community_id):
        await access_service.grant_role(moderator_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        await access_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))

        with pytest.raises(PermissionDeniedError):
            await access_service.verify_expert(user_id, community_id, moderator_id)

    @pytest.mark.asyncio
    async def test_admin_verifies_expert(self, access_service, registered_groups, user_id, community_id):
        _, private_group = registered_groups
        admin_id = UserId.generate()
        await access_service.grant_role(admin_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        await access_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        assert not await access_service.can_post_or_interact(user_id, private_group.id)

        record = await access_service.verify_expert(user_id, community_id, admin_id)

        assert record.verification_status == VerificationStatus.VERIFIED
        assert record.verified_by == admin_id
        assert await access_service.can_post_or_interact(user_id, private_group.id)
        assert await access_service.resolve_permission(user_id, "mark_best_answer", Scope.community(community_id))

    @pytest.mark.asyncio
    async def test_admin_rejects_expert(self, access_service, user_id, community_id):
        admin_id = UserId.generate()
        await access_service.grant_role(admin_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        await access_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))

        record = await access_service.reject_expert(user_id, community_id, admin_id)
        assert record.verification_status == VerificationStatus.REJECTED
        assert not await access_service.resolve_permission(user_id, "mark_best_answer", Scope.community(community_id))


@pytest.mark.asyncio
async def test_in_memory_factory(group_directory, community_directory, settings, public_group, creator_id, user_id):
    service = create_in_memory_access_service(group_directory, community_directory, settings=settings)
    assert isinstance(service, CommunityAccessService)

    await service.register_creator(public_group.id)
    await service.request_join(public_group.id, user_id)
    await service.ban_member(public_group.id, user_id, creator_id)

    assert not await service.can_post_or_interact(user_id, public_group.id)
    assert [r.user_id for r in await service.list_members(public_group.id)] == [creator_id]
    assert (await group_directory.get_group(public_group.id)).member_count == 1
    assert isinstance(service.role_service.cache, InMemoryRoleRecordCache)


@pytest.mark.asyncio
async def test_settings_factory_requires_database_url():
    with pytest.raises(ConfigurationError):
        await create_access_service_from_settings(AccessSettings(database_url=None))


@pytest.mark.asyncio
async def test_settings_factory_builds_pool_and_cache(mocker):
    pool = MagicMock()
    create_pool = mocker.patch(
        "community_access.features.authorization.services.access_service.asyncpg.create_pool",
        new=AsyncMock(return_value=pool),
    )
    settings = AccessSettings(
        database_url="postgresql://access@localhost/community",
        redis_url="redis://localhost:6379/0",
        store_timeout_seconds=2.0,
        role_cache_ttl=90,
    )

    service = await create_access_service_from_settings(settings)

    create_pool.assert_awaited_once_with("postgresql://access@localhost/community", command_timeout=2.0)
    assert isinstance(service.role_service.cache, RedisRoleRecordCache)
    assert service.role_service.cache.default_ttl == 90
    assert service.lifecycle.repository.pool is pool


@pytest.mark.asyncio
async def test_settings_factory_without_redis(mocker):
    mocker.patch(
        "community_access.features.authorization.services.access_service.asyncpg.create_pool",
        new=AsyncMock(return_value=MagicMock()),
    )
    service = await create_access_service_from_settings(
        AccessSettings(database_url="postgresql://localhost/community", redis_url=None)
    )
    assert service.role_service.cache is None
