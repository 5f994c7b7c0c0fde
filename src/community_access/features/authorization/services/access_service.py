"""Community access service.

The boundary request handlers call: permission and gate questions, the
membership transitions and role grant management, each checked against the
acting user before anything is mutated.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import asyncpg
from redis.asyncio import Redis

from ....config.constants import ExpertiseArea, GroupRole, PermissionToken, RoleKind
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import ConfigurationError
from ....core.value_objects import CommunityId, GroupId, Scope, UserId
from ...groups.entities import CommunityDirectory, GroupDirectory
from ...groups.repositories import AsyncPGCommunityDirectory, AsyncPGGroupDirectory
from ...memberships.entities import MembershipRecord
from ...memberships.repositories import AsyncPGMembershipRepository, InMemoryMembershipRepository
from ...memberships.services import MembershipLifecycle
from ...roles.entities import RoleRecord, RoleRecordCache
from ...roles.repositories import (
    AsyncPGRoleRecordRepository,
    InMemoryRoleRecordCache,
    InMemoryRoleRecordRepository,
    RedisRoleRecordCache,
)
from ...roles.services import RoleService
from ...roles.services.permission_resolver import TokenLike
from ..entities import AuthorizationDecision, RoleTag
from .authorization_gate import AuthorizationGate

logger = logging.getLogger(__name__)


# Permission the acting user needs at the grant scope to grant or revoke a kind.
# PlatformAdmin grants are reserved to platform admins.
GRANT_AUTHORITY: Dict[RoleKind, PermissionToken] = {
    RoleKind.COMMUNITY_MODERATOR: PermissionToken.ASSIGN_MODERATORS,
    RoleKind.COMMUNITY_EXPERT: PermissionToken.APPROVE_EXPERTS,
    RoleKind.GROUP_ADMIN: PermissionToken.MANAGE_GROUPS,
    RoleKind.GROUP_MODERATOR: PermissionToken.MANAGE_GROUPS,
    RoleKind.ORDINARY_USER: PermissionToken.ASSIGN_MODERATORS,
}

# Kinds a user may grant to themselves; the grant stays subject to verification.
SELF_GRANTABLE: frozenset = frozenset({RoleKind.COMMUNITY_EXPERT})


class CommunityAccessService:
    """Facade over role resolution, the membership lifecycle and the gate."""

    def __init__(
        self,
        role_service: RoleService,
        lifecycle: MembershipLifecycle,
        gate: Optional[AuthorizationGate] = None,
        settings: Optional[AccessSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.role_service = role_service
        self.lifecycle = lifecycle
        self.gate = gate or AuthorizationGate(role_service, lifecycle, settings=self.settings)

    # Questions

    async def resolve_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> bool:
        """Check a permission token at a scope; store failures deny."""
        return await self.gate.has_permission(user_id, token, scope)

    async def can_moderate(self, user_id: UserId, group_id: GroupId) -> bool:
        return await self.gate.can_moderate(user_id, group_id)

    async def can_post_or_interact(self, user_id: UserId, group_id: GroupId) -> bool:
        return await self.gate.can_post_or_interact(user_id, group_id)

    async def check_moderate(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        return await self.gate.check_moderate(user_id, group_id)

    async def check_post_or_interact(self, user_id: UserId, group_id: GroupId) -> AuthorizationDecision:
        return await self.gate.check_post_or_interact(user_id, group_id)

    async def describe_roles(self, user_id: UserId, group_id: GroupId) -> List[RoleTag]:
        return await self.gate.describe_roles(user_id, group_id)

    # Membership transitions

    async def request_join(self, group_id: GroupId, user_id: UserId, message: Optional[str] = None) -> MembershipRecord:
        return await self.lifecycle.request_join(group_id, user_id, message)

    async def approve_join(self, group_id: GroupId, user_id: UserId, approver_id: UserId) -> MembershipRecord:
        await self.gate.require_moderate(approver_id, group_id)
        return await self.lifecycle.approve_join(group_id, user_id, approver_id)

    async def reject_join(self, group_id: GroupId, user_id: UserId, rejecter_id: UserId) -> None:
        await self.gate.require_moderate(rejecter_id, group_id)
        await self.lifecycle.reject_join(group_id, user_id, rejecter_id)

    async def withdraw_request(self, group_id: GroupId, user_id: UserId) -> None:
        await self.lifecycle.withdraw_request(group_id, user_id)

    async def leave_group(self, group_id: GroupId, user_id: UserId) -> MembershipRecord:
        return await self.lifecycle.leave_group(group_id, user_id)

    async def ban_member(
        self,
        group_id: GroupId,
        user_id: UserId,
        banner_id: UserId,
        reason: Optional[str] = None,
    ) -> MembershipRecord:
        await self.gate.require_moderate(banner_id, group_id)
        return await self.lifecycle.ban_member(group_id, user_id, banner_id, reason)

    async def unban_member(self, group_id: GroupId, user_id: UserId, unbanner_id: UserId) -> MembershipRecord:
        await self.gate.require_moderate(unbanner_id, group_id)
        return await self.lifecycle.unban_member(group_id, user_id, unbanner_id)

    async def register_creator(self, group_id: GroupId) -> MembershipRecord:
        return await self.lifecycle.register_creator(group_id)

    async def change_member_role(
        self,
        group_id: GroupId,
        user_id: UserId,
        role: GroupRole,
        changed_by: UserId,
    ) -> MembershipRecord:
        await self.gate.require_manage_members(changed_by, group_id)
        return await self.lifecycle.change_member_role(group_id, user_id, role, changed_by)

    async def list_members(self, group_id: GroupId) -> List[MembershipRecord]:
        return await self.lifecycle.list_members(group_id)

    async def list_pending_requests(self, group_id: GroupId) -> List[MembershipRecord]:
        return await self.lifecycle.list_pending_requests(group_id)

    async def list_banned(self, group_id: GroupId) -> List[MembershipRecord]:
        return await self.lifecycle.list_banned(group_id)

    # Role management

    async def _require_grant_authority(
        self,
        actor_id: UserId,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
    ) -> None:
        if role_kind == RoleKind.PLATFORM_ADMIN:
            await self.gate.require_platform_admin(actor_id)
            return
        if actor_id == user_id and role_kind in SELF_GRANTABLE:
            return
        await self.gate.require_permission(actor_id, GRANT_AUTHORITY[role_kind], scope)

    async def grant_role(
        self,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        granted_by: Optional[UserId] = None,
        expertise_areas: Optional[Iterable[ExpertiseArea]] = None,
        credentials: Optional[str] = None,
    ) -> RoleRecord:
        """Grant a role.

        ``granted_by=None`` is a system grant (bootstrap, registration) and
        skips the authority check.
        """
        if granted_by is not None:
            await self._require_grant_authority(granted_by, user_id, role_kind, scope)
        return await self.role_service.grant_role(
            user_id, role_kind, scope,
            granted_by=granted_by,
            expertise_areas=expertise_areas,
            credentials=credentials,
        )

    async def revoke_role(
        self,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        revoked_by: Optional[UserId] = None,
    ) -> None:
        if revoked_by is not None:
            await self._require_grant_authority(revoked_by, user_id, role_kind, scope)
        await self.role_service.revoke_role(user_id, role_kind, scope)

    async def verify_expert(self, user_id: UserId, community_id: CommunityId, verifier_id: UserId) -> RoleRecord:
        await self.gate.require_permission(verifier_id, PermissionToken.APPROVE_EXPERTS, Scope.community(community_id))
        return await self.role_service.verify_expert(user_id, community_id, verifier_id)

    async def reject_expert(self, user_id: UserId, community_id: CommunityId, rejecter_id: UserId) -> RoleRecord:
        await self.gate.require_permission(rejecter_id, PermissionToken.APPROVE_EXPERTS, Scope.community(community_id))
        return await self.role_service.reject_expert(user_id, community_id, rejecter_id)

    async def get_user_roles(self, user_id: UserId) -> List[RoleRecord]:
        return await self.role_service.get_user_roles(user_id)

    async def list_pending_experts(self) -> List[RoleRecord]:
        return await self.role_service.list_pending_experts()

    async def role_statistics(self) -> Dict[str, Any]:
        return await self.role_service.role_statistics()


def create_in_memory_access_service(
    group_directory: GroupDirectory,
    community_directory: Optional[CommunityDirectory] = None,
    settings: Optional[AccessSettings] = None,
) -> CommunityAccessService:
    """Create an access service over in-memory stores and an in-memory role cache.

    Args:
        group_directory: Directory owning groups and their member counters
        community_directory: Community lookup for scope chaining (optional)
        settings: Settings instance (defaults to get_settings())

    Returns:
        Configured CommunityAccessService instance
    """
    settings = settings or get_settings()
    role_service = RoleService(
        InMemoryRoleRecordRepository(),
        group_directory,
        community_directory,
        cache=InMemoryRoleRecordCache(settings.role_cache_ttl),
        settings=settings,
    )
    lifecycle = MembershipLifecycle(
        InMemoryMembershipRepository(group_directory),
        group_directory,
        settings=settings,
    )
    return CommunityAccessService(role_service, lifecycle, settings=settings)


def _build_postgres_access_service(
    pool: asyncpg.Pool,
    cache: Optional[RoleRecordCache],
    settings: AccessSettings,
) -> CommunityAccessService:
    group_directory = AsyncPGGroupDirectory(pool, settings)
    community_directory = AsyncPGCommunityDirectory(pool, settings)

    role_service = RoleService(
        AsyncPGRoleRecordRepository(pool, settings),
        group_directory,
        community_directory,
        cache=cache,
        settings=settings,
    )
    lifecycle = MembershipLifecycle(
        AsyncPGMembershipRepository(pool, group_directory, settings),
        group_directory,
        settings=settings,
    )
    logger.info(f"Created access service (role cache {'enabled' if cache else 'disabled'})")
    return CommunityAccessService(role_service, lifecycle, settings=settings)


def create_postgres_access_service(
    pool: asyncpg.Pool,
    redis_client: Optional[Redis] = None,
    settings: Optional[AccessSettings] = None,
) -> CommunityAccessService:
    """Create an access service over PostgreSQL, with an optional Redis role cache.

    Args:
        pool: AsyncPG pool holding the groups, communities, memberships and role tables
        redis_client: Redis client for the role record cache (optional)
        settings: Settings instance (defaults to get_settings())

    Returns:
        Configured CommunityAccessService instance
    """
    settings = settings or get_settings()
    cache = RedisRoleRecordCache(redis_client, settings.role_cache_ttl) if redis_client is not None else None
    return _build_postgres_access_service(pool, cache, settings)


async def create_access_service_from_settings(
    settings: Optional[AccessSettings] = None,
) -> CommunityAccessService:
    """Create a PostgreSQL-backed access service from ``database_url`` and ``redis_url``.

    The pool is created here; the caller owns it afterwards and closes it on
    shutdown. Without ``redis_url`` the role cache is disabled.

    Raises:
        ConfigurationError: If ``database_url`` is not set
    """
    settings = settings or get_settings()
    if not settings.database_url:
        raise ConfigurationError("COMMUNITY_ACCESS_DATABASE_URL is required for the PostgreSQL access service")

    pool = await asyncpg.create_pool(settings.database_url, command_timeout=settings.store_timeout_seconds)
    cache = (
        RedisRoleRecordCache.from_url(settings.redis_url, settings.role_cache_ttl)
        if settings.redis_url
        else None
    )
    return _build_postgres_access_service(pool, cache, settings)
