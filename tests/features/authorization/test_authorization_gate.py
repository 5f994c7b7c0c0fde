"""Tests for the authorization gate."""

import logging

import pytest
from unittest.mock import AsyncMock

from community_access.config import AccessSettings, GroupRole, RoleKind, VerificationStatus
from community_access.core.exceptions import GroupNotFoundError, PermissionDeniedError, TransientStoreError
from community_access.core.value_objects import GroupId, Scope, UserId
from community_access.features.authorization import (
    AuthorizationGate,
    DenialReason,
    RoleTagSource,
    RoleTagType,
)


class TestCanModerate:
    """Moderation rights from roles or group-local membership."""

    @pytest.mark.asyncio
    async def test_platform_admin(self, gate, role_service, registered_groups, user_id):
        public_group, _ = registered_groups
        await role_service.grant_role(user_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        decision = await gate.check_moderate(user_id, public_group.id)
        assert decision.allowed
        assert decision.granted_by == "platform_admin"

    @pytest.mark.asyncio
    async def test_community_moderator_moderates_groups(self, gate, role_service, registered_groups, user_id, community_id):
        public_group, _ = registered_groups
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        assert await gate.can_moderate(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_community_moderator_excluded_by_setting(
        self, role_service, lifecycle, registered_groups, user_id, community_id
    ):
        public_group, _ = registered_groups
        strict_gate = AuthorizationGate(
            role_service, lifecycle, settings=AccessSettings(community_moderators_moderate_groups=False)
        )
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        assert not await strict_gate.can_moderate(user_id, public_group.id)

        await role_service.grant_role(user_id, RoleKind.GROUP_MODERATOR, Scope.group(public_group.id))
        assert await strict_gate.can_moderate(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_community_moderator_of_other_community(
        self, gate, role_service, registered_groups, user_id, other_community_id
    ):
        public_group, _ = registered_groups
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(other_community_id))
        assert not await gate.can_moderate(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_group_moderator_role_record(self, gate, role_service, registered_groups, user_id):
        public_group, private_group = registered_groups
        await role_service.grant_role(user_id, RoleKind.GROUP_MODERATOR, Scope.group(public_group.id))
        assert await gate.can_moderate(user_id, public_group.id)
        assert not await gate.can_moderate(user_id, private_group.id)

    @pytest.mark.asyncio
    async def test_creator_membership_moderates(self, gate, registered_groups, creator_id):
        public_group, _ = registered_groups
        decision = await gate.check_moderate(creator_id, public_group.id)
        assert decision.allowed
        assert decision.granted_by == "membership"

    @pytest.mark.asyncio
    async def test_membership_moderator_role(self, gate, lifecycle, registered_groups, user_id):
        public_group, _ = registered_groups
        await lifecycle.request_join(public_group.id, user_id)
        assert (await gate.check_moderate(user_id, public_group.id)).reason == DenialReason.INSUFFICIENT_ROLE

        await lifecycle.change_member_role(public_group.id, user_id, GroupRole.MODERATOR)
        assert await gate.can_moderate(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_banned_moderator_loses_rights(self, gate, lifecycle, registered_groups, user_id, creator_id):
        public_group, _ = registered_groups
        await lifecycle.request_join(public_group.id, user_id)
        await lifecycle.change_member_role(public_group.id, user_id, GroupRole.MODERATOR)
        await lifecycle.ban_member(public_group.id, user_id, creator_id)
        assert (await gate.check_moderate(user_id, public_group.id)).reason == DenialReason.NOT_MEMBER

    @pytest.mark.asyncio
    async def test_unknown_group(self, gate, user_id):
        decision = await gate.check_moderate(user_id, GroupId.generate())
        assert not decision
        assert decision.reason == DenialReason.NOT_FOUND

    @pytest.mark.asyncio
    async def test_store_failure_denies(self, gate, role_service, registered_groups, user_id, caplog):
        public_group, _ = registered_groups
        role_service.get_user_roles = AsyncMock(side_effect=TransientStoreError("timeout"))

        with caplog.at_level(logging.WARNING):
            decision = await gate.check_moderate(user_id, public_group.id)

        assert not decision.allowed
        assert decision.reason == DenialReason.STORE_UNAVAILABLE
        assert "store unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_require_moderate(self, gate, registered_groups, user_id):
        public_group, _ = registered_groups
        with pytest.raises(PermissionDeniedError) as exc_info:
            await gate.require_moderate(user_id, public_group.id)
        assert exc_info.value.details["reason"] == "not_member"

    @pytest.mark.asyncio
    async def test_require_moderate_propagates_store_failure(self, gate, role_service, registered_groups, user_id):
        public_group, _ = registered_groups
        role_service.get_user_roles = AsyncMock(side_effect=TransientStoreError("timeout"))
        with pytest.raises(TransientStoreError):
            await gate.require_moderate(user_id, public_group.id)


class TestCanPostOrInteract:
    """Posting rights from membership or community roles."""

    @pytest.mark.asyncio
    async def test_active_member(self, gate, lifecycle, registered_groups, user_id):
        public_group, _ = registered_groups
        assert not await gate.can_post_or_interact(user_id, public_group.id)
        await lifecycle.request_join(public_group.id, user_id)
        assert await gate.can_post_or_interact(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_pending_member_cannot_post(self, gate, lifecycle, registered_groups, user_id):
        _, private_group = registered_groups
        await lifecycle.request_join(private_group.id, user_id)
        decision = await gate.check_post_or_interact(user_id, private_group.id)
        assert decision.reason == DenialReason.NOT_MEMBER

    @pytest.mark.asyncio
    async def test_platform_admin(self, gate, role_service, registered_groups, user_id):
        _, private_group = registered_groups
        await role_service.grant_role(user_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        assert await gate.can_post_or_interact(user_id, private_group.id)

    @pytest.mark.asyncio
    async def test_expert_needs_verification(self, gate, role_service, registered_groups, user_id, community_id):
        _, private_group = registered_groups
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        assert not await gate.can_post_or_interact(user_id, private_group.id)

        await role_service.verify_expert(user_id, community_id, UserId.generate())
        decision = await gate.check_post_or_interact(user_id, private_group.id)
        assert decision.allowed
        assert decision.granted_by == "community_role"

    @pytest.mark.asyncio
    async def test_community_moderator(self, gate, role_service, registered_groups, user_id, community_id):
        _, private_group = registered_groups
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))
        assert await gate.can_post_or_interact(user_id, private_group.id)

    @pytest.mark.asyncio
    async def test_expert_of_other_community(self, gate, role_service, registered_groups, user_id, other_community_id):
        public_group, _ = registered_groups
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(other_community_id))
        await role_service.verify_expert(user_id, other_community_id, UserId.generate())
        assert not await gate.can_post_or_interact(user_id, public_group.id)

    @pytest.mark.asyncio
    async def test_unknown_group(self, gate, user_id):
        assert not await gate.can_post_or_interact(user_id, GroupId.generate())

    @pytest.mark.asyncio
    async def test_membership_store_failure_denies(self, gate, lifecycle, registered_groups, user_id):
        public_group, _ = registered_groups
        lifecycle.get_membership = AsyncMock(side_effect=TransientStoreError("timeout"))
        decision = await gate.check_post_or_interact(user_id, public_group.id)
        assert decision.reason == DenialReason.STORE_UNAVAILABLE


class TestDescribeRoles:
    """Display role tags ordered by precedence."""

    @pytest.mark.asyncio
    async def test_platform_admin_alone(self, gate, role_service, lifecycle, registered_groups, user_id, community_id):
        public_group, _ = registered_groups
        await role_service.grant_role(user_id, RoleKind.PLATFORM_ADMIN, Scope.platform())
        await role_service.grant_role(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        tags = await gate.describe_roles(user_id, public_group.id)
        assert [(t.type, t.source) for t in tags] == [(RoleTagType.ADMIN, RoleTagSource.PLATFORM)]

    @pytest.mark.asyncio
    async def test_combined_tags_sorted(self, gate, role_service, registered_groups, creator_id, community_id):
        public_group, _ = registered_groups
        await role_service.grant_role(creator_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        await role_service.grant_role(creator_id, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))

        tags = await gate.describe_roles(creator_id, public_group.id)
        assert [(t.type, t.source) for t in tags] == [
            (RoleTagType.GROUP_ADMIN, RoleTagSource.GROUP),
            (RoleTagType.MODERATOR, RoleTagSource.COMMUNITY),
            (RoleTagType.EXPERT, RoleTagSource.COMMUNITY),
        ]
        assert tags[-1].verification_status == VerificationStatus.PENDING
        assert [t.priority for t in tags] == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_plain_member_has_no_tags(self, gate, lifecycle, registered_groups, user_id):
        public_group, _ = registered_groups
        await lifecycle.request_join(public_group.id, user_id)
        assert await gate.describe_roles(user_id, public_group.id) == []

    @pytest.mark.asyncio
    async def test_unknown_group(self, gate, user_id):
        with pytest.raises(GroupNotFoundError):
            await gate.describe_roles(user_id, GroupId.generate())
