"""Authorization gate composing role resolution and group membership.

Answers the composite questions write handlers ask before mutating state.
Every question is deny-by-default: a missing group, a missing membership or
a failed store load is a denial, never an exception that slips past the
caller. ``check_*`` methods return an AuthorizationDecision, ``can_*``
methods the bare bool, and ``require_*`` methods raise PermissionDeniedError
(store failures propagate there as TransientStoreError so the caller can
retry).
"""

import logging
from typing import List, Optional

from ....config.constants import GroupRole, PermissionToken, RoleKind
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import GroupNotFoundError, PermissionDeniedError, TransientStoreError
from ....core.value_objects import GroupId, Scope, UserId
from ...groups.entities import GroupDirectory
from ...memberships.services import MembershipLifecycle
from ...roles.entities import MODERATION_PERMISSIONS, RoleRecord
from ...roles.services import RoleService
from ...roles.services.permission_resolver import TokenLike
from ..entities import (
    AuthorizationDecision,
    DenialReason,
    RoleTag,
    RoleTagSource,
    RoleTagType,
)

logger = logging.getLogger(__name__)


_COMMUNITY_POSTING_ROLES = (RoleKind.COMMUNITY_EXPERT, RoleKind.COMMUNITY_MODERATOR)


class AuthorizationGate:
    """Deny-by-default answers to moderation and posting questions."""

    def __init__(
        self,
        role_service: RoleService,
        lifecycle: MembershipLifecycle,
        group_directory: Optional[GroupDirectory] = None,
        settings: Optional[AccessSettings] = None,
    ):
        self.role_service = role_service
        self.lifecycle = lifecycle
        self.group_directory = group_directory or lifecycle.group_directory
        self.resolver = role_service.resolver
        self.settings = settings or get_settings()

    def _moderation_records(self, records: List[RoleRecord]) -> List[RoleRecord]:
        """Records whose moderation permissions apply to groups."""
        if self.settings.community_moderators_moderate_groups:
            return records
        return [record for record in records if not record.scope.is_community]

    # Decisions (store errors propagate)

    async def _decide_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> AuthorizationDecision:
        if await self.role_service.resolve_permission(user_id, token, scope):
            return AuthorizationDecision.allow("role")
        return AuthorizationDecision.deny(DenialReason.INSUFFICIENT_ROLE)

    async def _decide_moderate(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        group = await self.group_directory.get_group(group_id)
        if group is None:
            return AuthorizationDecision.deny(DenialReason.NOT_FOUND)

        records = await self.role_service.get_user_roles(user_id)
        if self.resolver.is_platform_admin(records):
            return AuthorizationDecision.allow("platform_admin")

        scope = Scope.group(group.id, group.community_id)
        if self.resolver.has_any_permission(self._moderation_records(records), MODERATION_PERMISSIONS, scope):
            return AuthorizationDecision.allow("role")

        membership = await self.lifecycle.get_membership(group_id, user_id)
        if membership is None or not membership.is_active:
            return AuthorizationDecision.deny(DenialReason.NOT_MEMBER)
        if membership.can_moderate:
            return AuthorizationDecision.allow("membership")
        return AuthorizationDecision.deny(DenialReason.INSUFFICIENT_ROLE)

    async def _decide_post_or_interact(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        group = await self.group_directory.get_group(group_id)
        if group is None:
            return AuthorizationDecision.deny(DenialReason.NOT_FOUND)

        records = await self.role_service.get_user_roles(user_id)
        if self.resolver.is_platform_admin(records):
            return AuthorizationDecision.allow("platform_admin")

        membership = await self.lifecycle.get_membership(group_id, user_id)
        if membership is not None and membership.is_active:
            return AuthorizationDecision.allow("membership")

        if self.resolver.holds_role(
            records, _COMMUNITY_POSTING_ROLES, Scope.community(group.community_id), verified_only=True
        ):
            return AuthorizationDecision.allow("community_role")

        return AuthorizationDecision.deny(DenialReason.NOT_MEMBER)

    async def _decide_manage_members(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        group = await self.group_directory.get_group(group_id)
        if group is None:
            return AuthorizationDecision.deny(DenialReason.NOT_FOUND)

        scope = Scope.group(group.id, group.community_id)
        if await self.role_service.resolve_permission(user_id, PermissionToken.MANAGE_GROUPS, scope):
            return AuthorizationDecision.allow("role")

        membership = await self.lifecycle.get_membership(group_id, user_id)
        if membership is None or not membership.is_active:
            return AuthorizationDecision.deny(DenialReason.NOT_MEMBER)
        if membership.role == GroupRole.ADMIN:
            return AuthorizationDecision.allow("membership")
        return AuthorizationDecision.deny(DenialReason.INSUFFICIENT_ROLE)

    async def _safely(self, question: str, user_id: UserId, decide) -> AuthorizationDecision:
        try:
            return await decide
        except TransientStoreError as e:
            logger.warning(f"Denying {question} for user {user_id}: store unavailable ({e.message})")
            return AuthorizationDecision.deny(DenialReason.STORE_UNAVAILABLE)

    # Decision variants

    async def check_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> AuthorizationDecision:
        return await self._safely(f"{token} at {scope}", user_id, self._decide_permission(user_id, token, scope))

    async def check_moderate(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        """Moderation rights on a group.

        Granted by a moderation permission (ban_users or moderate_posts)
        resolved at the group scope, or by an active admin/moderator
        membership in the group.
        """
        return await self._safely(f"moderation of group {group_id}", user_id, self._decide_moderate(user_id, group_id))

    async def check_post_or_interact(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        """Posting and interaction rights in a group.

        Granted to platform admins, active members, and verified experts or
        moderators of the group's parent community.
        """
        return await self._safely(
            f"posting in group {group_id}", user_id, self._decide_post_or_interact(user_id, group_id)
        )

    async def check_manage_members(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        """Rights to change group-local roles: manage_groups at the group or an admin membership."""
        return await self._safely(
            f"member management of group {group_id}", user_id, self._decide_manage_members(user_id, group_id)
        )

    # Boolean variants

    async def has_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> bool:
        return (await self.check_permission(user_id, token, scope)).allowed

    async def can_moderate(self, user_id: UserId, group_id: GroupId) -> bool:
        return (await self.check_moderate(user_id, group_id)).allowed

    async def can_post_or_interact(self, user_id: UserId, group_id: GroupId) -> bool:
        return (await self.check_post_or_interact(user_id, group_id)).allowed

    # Raising variants

    @staticmethod
    def _raise_denied(action: str, user_id: UserId, decision: AuthorizationDecision) -> None:
        raise PermissionDeniedError(
            f"User {user_id} is not permitted to {action}",
            details={"user_id": str(user_id), "reason": decision.reason.value if decision.reason else None},
        )

    async def require_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> None:
        decision = await self._decide_permission(user_id, token, scope)
        if not decision:
            self._raise_denied(f"use {token} at {scope}", user_id, decision)

    async def require_platform_admin(self, user_id: UserId) -> None:
        if not await self.role_service.is_platform_admin(user_id):
            self._raise_denied(
                "act as platform admin", user_id, AuthorizationDecision.deny(DenialReason.INSUFFICIENT_ROLE)
            )

    async def require_moderate(self, user_id: UserId, group_id: GroupId) -> None:
        decision = await self._decide_moderate(user_id, group_id)
        if not decision:
            self._raise_denied(f"moderate group {group_id}", user_id, decision)

    async def require_manage_members(self, user_id: UserId, group_id: GroupId) -> None:
        decision = await self._decide_manage_members(user_id, group_id)
        if not decision:
            self._raise_denied(f"manage members of group {group_id}", user_id, decision)

    # Display

    async def describe_roles(self, user_id: UserId, group_id: GroupId) -> List[RoleTag]:
        """Display roles of a user in a group, highest priority first.

        A platform admin gets the admin tag alone.
        """
        group = await self.group_directory.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")

        records = await self.role_service.get_user_roles(user_id)
        if self.resolver.is_platform_admin(records):
            return [RoleTag(RoleTagType.ADMIN, RoleTagSource.PLATFORM)]

        tags = set()
        membership = await self.lifecycle.get_membership(group_id, user_id)
        if membership is not None and membership.is_active:
            if membership.role == GroupRole.ADMIN:
                tags.add(RoleTag(RoleTagType.GROUP_ADMIN, RoleTagSource.GROUP))
            elif membership.role == GroupRole.MODERATOR:
                tags.add(RoleTag(RoleTagType.MODERATOR, RoleTagSource.GROUP))

        for record in self.resolver.applicable_records(records, Scope.group(group.id, group.community_id)):
            if record.role_kind == RoleKind.GROUP_ADMIN:
                tags.add(RoleTag(RoleTagType.GROUP_ADMIN, RoleTagSource.GROUP))
            elif record.role_kind == RoleKind.GROUP_MODERATOR:
                tags.add(RoleTag(RoleTagType.MODERATOR, RoleTagSource.GROUP))
            elif record.role_kind == RoleKind.COMMUNITY_MODERATOR:
                tags.add(RoleTag(RoleTagType.MODERATOR, RoleTagSource.COMMUNITY))
            elif record.role_kind == RoleKind.COMMUNITY_EXPERT:
                tags.add(RoleTag(RoleTagType.EXPERT, RoleTagSource.COMMUNITY, record.verification_status))

        return sorted(tags, key=lambda tag: (tag.priority, tag.source.value))
