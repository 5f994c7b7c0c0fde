"""Role service for grant management and permission resolution.

Loads role records (through the optional cache), chains query scopes to
their parent community and hands the result to the pure PermissionResolver.
Store failures propagate as TransientStoreError; callers that answer yes/no
questions treat them as deny.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ....config.constants import ExpertiseArea, RoleKind, VerificationStatus
from ....config.settings import AccessSettings, get_settings
from ....core.exceptions import (
    CommunityNotFoundError,
    ConflictError,
    GroupNotFoundError,
    RoleNotFoundError,
)
from ....core.value_objects import CommunityId, Scope, UserId
from ...groups.entities import CommunityDirectory, GroupDirectory
from ..entities import (
    RoleRecord,
    RoleRecordCache,
    RoleRecordRepository,
    validate_role_scope,
)
from .permission_resolver import PermissionResolver, TokenLike

logger = logging.getLogger(__name__)


class RoleService:
    """Service orchestrating role grants and permission checks."""

    def __init__(
        self,
        repository: RoleRecordRepository,
        group_directory: GroupDirectory,
        community_directory: Optional[CommunityDirectory] = None,
        cache: Optional[RoleRecordCache] = None,
        resolver: Optional[PermissionResolver] = None,
        settings: Optional[AccessSettings] = None,
    ):
        self.repository = repository
        self.group_directory = group_directory
        self.community_directory = community_directory
        self.settings = settings or get_settings()
        self.cache = cache if self.settings.role_cache_enabled else None
        self.resolver = resolver or PermissionResolver()

    # Loading

    async def get_user_roles(self, user_id: UserId) -> List[RoleRecord]:
        """Get a user's active role records, through the cache when enabled.

        The cache generation is read before the store load; the fill is
        dropped if a grant mutation invalidated the user in between.
        """
        generation = None
        if self.cache:
            cached = await self.cache.get_user_roles(user_id)
            if cached is not None:
                return cached
            generation = await self.cache.get_generation(user_id)

        records = await self.repository.list_active_for_user(user_id)

        if self.cache and generation is not None:
            await self.cache.set_user_roles(user_id, records, generation, ttl=self.settings.role_cache_ttl)

        return records

    async def resolve_scope(self, scope: Scope) -> Optional[Scope]:
        """Chain a query scope to its parent community.

        Returns None when the scope references a group or community that
        does not exist.
        """
        if scope.is_group:
            group = await self.group_directory.get_group(scope.group_id)
            if group is None:
                return None
            if scope.community_id is not None and scope.community_id != group.community_id:
                logger.warning(
                    f"Scope for group {scope.group_id} names community {scope.community_id}, "
                    f"group belongs to {group.community_id}"
                )
            return scope.with_parent(group.community_id)

        if scope.is_community and self.community_directory is not None:
            if not await self.community_directory.exists(scope.community_id):
                return None

        return scope

    async def resolve_permission(self, user_id: UserId, token: TokenLike, scope: Scope) -> bool:
        """Check whether a user holds ``token`` at ``scope``."""
        records = await self.get_user_roles(user_id)

        # Platform admins bypass scope lookups entirely
        if self.resolver.is_platform_admin(records):
            return True

        resolved = await self.resolve_scope(scope)
        if resolved is None:
            logger.debug(f"Scope {scope} not found, denying {token} for user {user_id}")
            return False

        return self.resolver.has_permission(records, token, resolved)

    async def get_effective_permissions(self, user_id: UserId, scope: Scope) -> frozenset:
        """Every token a user holds at ``scope``."""
        records = await self.get_user_roles(user_id)
        if self.resolver.is_platform_admin(records):
            return self.resolver.effective_permissions(records, scope)

        resolved = await self.resolve_scope(scope)
        if resolved is None:
            return frozenset()
        return self.resolver.effective_permissions(records, resolved)

    async def is_platform_admin(self, user_id: UserId) -> bool:
        return self.resolver.is_platform_admin(await self.get_user_roles(user_id))

    # Grant management

    async def _require_scope_exists(self, scope: Scope) -> None:
        if scope.is_group:
            if await self.group_directory.get_group(scope.group_id) is None:
                raise GroupNotFoundError(f"Group not found: {scope.group_id}")
        elif scope.is_community and self.community_directory is not None:
            if not await self.community_directory.exists(scope.community_id):
                raise CommunityNotFoundError(f"Community not found: {scope.community_id}")

    async def _invalidate(self, user_id: UserId) -> None:
        if self.cache:
            await self.cache.invalidate_user_roles(user_id)

    async def _get_active(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> RoleRecord:
        record = await self.repository.find(user_id, role_kind, scope)
        if record is None or not record.is_active:
            raise RoleNotFoundError(
                f"Active {role_kind.value} role not found for user {user_id} at {scope}",
                details={"user_id": str(user_id), "role_kind": role_kind.value, "scope": scope.key},
            )
        return record

    async def grant_role(
        self,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        granted_by: Optional[UserId] = None,
        expertise_areas: Optional[Iterable[ExpertiseArea]] = None,
        credentials: Optional[str] = None,
    ) -> RoleRecord:
        """Grant a role; reactivates a previously revoked grant of the same identity."""
        scope = validate_role_scope(role_kind, scope)
        await self._require_scope_exists(scope)

        existing = await self.repository.find(user_id, role_kind, scope)
        if existing is not None and existing.is_active:
            raise ConflictError(
                f"User {user_id} already holds {role_kind.value} at {scope}",
                details={"user_id": str(user_id), "role_kind": role_kind.value, "scope": scope.key},
            )

        if existing is not None:
            existing.reactivate(granted_by)
            if role_kind == RoleKind.COMMUNITY_EXPERT:
                if expertise_areas is not None:
                    existing.expertise_areas = [ExpertiseArea(area) for area in expertise_areas]
                if credentials is not None:
                    existing.credentials = credentials
            record = await self.repository.update(existing)
            logger.info(f"Reactivated role {role_kind.value} for user {user_id} at {scope}")
        else:
            record = RoleRecord.grant(
                user_id, role_kind, scope,
                granted_by=granted_by,
                expertise_areas=expertise_areas,
                credentials=credentials,
            )
            record = await self.repository.insert(record)
            logger.info(f"Granted role {role_kind.value} to user {user_id} at {scope}")

        await self._invalidate(user_id)
        return record

    async def revoke_role(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> None:
        """Deactivate an active grant; the record is kept for audit."""
        record = await self._get_active(user_id, role_kind, scope)
        record.deactivate()
        await self.repository.update(record)
        await self._invalidate(user_id)
        logger.info(f"Revoked role {role_kind.value} from user {user_id} at {scope}")

    async def verify_expert(self, user_id: UserId, community_id: CommunityId, verifier_id: UserId) -> RoleRecord:
        """Mark a user's expert grant in a community verified."""
        record = await self._get_active(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        record.verify(verifier_id)
        record = await self.repository.update(record)
        await self._invalidate(user_id)
        logger.info(f"Verified expert {user_id} in community {community_id} by {verifier_id}")
        return record

    async def reject_expert(self, user_id: UserId, community_id: CommunityId, rejecter_id: UserId) -> RoleRecord:
        """Mark a user's expert grant in a community rejected."""
        record = await self._get_active(user_id, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        record.reject()
        record = await self.repository.update(record)
        await self._invalidate(user_id)
        logger.info(f"Rejected expert {user_id} in community {community_id} by {rejecter_id}")
        return record

    async def override_permissions(
        self,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        permissions: Iterable[TokenLike],
    ) -> RoleRecord:
        """Replace a grant's derived permissions with an explicit set."""
        record = await self._get_active(user_id, role_kind, scope)
        record.override_permissions(permissions)
        record = await self.repository.update(record)
        await self._invalidate(user_id)
        logger.info(
            f"Overrode permissions of {role_kind.value} for user {user_id} at {scope}: "
            f"{sorted(token.value for token in record.permissions)}"
        )
        return record

    async def rederive_permissions(self, user_id: UserId, role_kind: RoleKind, scope: Scope) -> RoleRecord:
        """Drop an override and recompute permissions from the role kind."""
        record = await self._get_active(user_id, role_kind, scope)
        record.rederive_permissions()
        record = await self.repository.update(record)
        await self._invalidate(user_id)
        return record

    async def change_role_kind(
        self,
        user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        new_kind: RoleKind,
        rederive: bool = False,
    ) -> RoleRecord:
        """Change the kind of an active grant, keeping its scope.

        An explicit permission override survives unless ``rederive`` is set.
        """
        record = await self._get_active(user_id, role_kind, scope)
        validate_role_scope(new_kind, record.scope)

        if await self.repository.find(user_id, new_kind, record.scope) is not None:
            raise ConflictError(
                f"User {user_id} already has a {new_kind.value} record at {record.scope}",
                details={"user_id": str(user_id), "role_kind": new_kind.value, "scope": record.scope.key},
            )

        record.change_kind(new_kind, rederive=rederive)
        record = await self.repository.update(record)
        await self._invalidate(user_id)
        logger.info(f"Changed role of user {user_id} at {scope} from {role_kind.value} to {new_kind.value}")
        return record

    # Queries

    async def list_pending_experts(self) -> List[RoleRecord]:
        """Active expert grants awaiting verification, newest first."""
        return await self.repository.list_by_kind(
            RoleKind.COMMUNITY_EXPERT, is_active=True, verification_status=VerificationStatus.PENDING
        )

    async def list_users_by_role(self, role_kind: RoleKind, is_active: bool = True) -> List[RoleRecord]:
        return await self.repository.list_by_kind(role_kind, is_active=is_active)

    async def role_statistics(self) -> Dict[str, Any]:
        """Counts of active admins, verified and pending experts, and ordinary users."""
        admins = await self.repository.list_by_kind(RoleKind.PLATFORM_ADMIN)
        verified = await self.repository.list_by_kind(
            RoleKind.COMMUNITY_EXPERT, verification_status=VerificationStatus.VERIFIED
        )
        pending = await self.repository.list_by_kind(
            RoleKind.COMMUNITY_EXPERT, verification_status=VerificationStatus.PENDING
        )
        users = await self.repository.list_by_kind(RoleKind.ORDINARY_USER)
        return {
            "total_admins": len(admins),
            "verified_experts": len(verified),
            "pending_experts": len(pending),
            "total_users": len(users),
        }
