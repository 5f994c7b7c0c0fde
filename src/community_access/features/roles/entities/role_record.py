"""RoleRecord domain entity.

A role record is one grant of a RoleKind to a user at a scope. Records are
soft-disabled rather than deleted so the grant history stays auditable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ....config.constants import (
    ExpertiseArea,
    FieldLimits,
    PermissionToken,
    RoleKind,
    ScopeLevel,
    VerificationStatus,
)
from ....core.exceptions import ValidationError
from ....core.value_objects import CommunityId, GroupId, Scope, UserId
from ....utils import generate_uuid_v7, utc_now
from .permissions import (
    EXPERT_GATED_PERMISSIONS,
    derive_permissions,
    parse_permission_tokens,
    scope_level_for,
)


RoleIdentity = Tuple[UserId, RoleKind, Optional[CommunityId], Optional[GroupId]]


def validate_role_scope(role_kind: RoleKind, scope: Scope) -> Scope:
    """Check that a role kind is granted at its own scope level.

    Returns:
        The scope as stored on the record
    """
    expected = scope_level_for(role_kind)
    if scope.level != expected:
        raise ValidationError(
            f"{role_kind.value} must be granted at {expected.value} scope, got {scope.level.value}",
            details={"role_kind": role_kind.value, "scope": scope.key},
        )
    return scope.identity()


@dataclass
class RoleRecord:
    """Domain entity for a role grant with derived permissions."""

    id: str
    subject_user_id: UserId
    role_kind: RoleKind
    scope: Scope
    permissions: FrozenSet[PermissionToken]
    is_active: bool = True
    permissions_overridden: bool = False
    granted_by: Optional[UserId] = None
    granted_at: datetime = field(default_factory=utc_now)

    # Expert-only
    expertise_areas: List[ExpertiseArea] = field(default_factory=list)
    credentials: Optional[str] = None
    verification_status: Optional[VerificationStatus] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[UserId] = None

    deactivated_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Validate scope and expert fields."""
        self.scope = validate_role_scope(self.role_kind, self.scope)

        if self.credentials is not None and len(self.credentials) > FieldLimits.CREDENTIALS:
            raise ValidationError(f"Credentials cannot exceed {FieldLimits.CREDENTIALS} characters")

        if self.role_kind == RoleKind.COMMUNITY_EXPERT and self.verification_status is None:
            self.verification_status = VerificationStatus.PENDING

    @classmethod
    def grant(
        cls,
        subject_user_id: UserId,
        role_kind: RoleKind,
        scope: Scope,
        granted_by: Optional[UserId] = None,
        expertise_areas: Optional[Iterable[ExpertiseArea]] = None,
        credentials: Optional[str] = None,
    ) -> 'RoleRecord':
        """Create a new active record with permissions derived from its kind."""
        is_expert = role_kind == RoleKind.COMMUNITY_EXPERT
        return cls(
            id=generate_uuid_v7(),
            subject_user_id=subject_user_id,
            role_kind=role_kind,
            scope=scope,
            permissions=derive_permissions(role_kind),
            granted_by=granted_by,
            expertise_areas=[ExpertiseArea(area) for area in (expertise_areas or [])] if is_expert else [],
            credentials=credentials if is_expert else None,
            verification_status=VerificationStatus.PENDING if is_expert else None,
        )

    # Identity

    @property
    def scope_community_id(self) -> Optional[CommunityId]:
        return self.scope.community_id

    @property
    def scope_group_id(self) -> Optional[GroupId]:
        return self.scope.group_id

    @property
    def identity(self) -> RoleIdentity:
        """Uniqueness key: (subject, kind, community scope, group scope)."""
        return (self.subject_user_id, self.role_kind, self.scope_community_id, self.scope_group_id)

    @property
    def is_platform_admin(self) -> bool:
        return self.is_active and self.role_kind == RoleKind.PLATFORM_ADMIN

    @property
    def is_verified_expert(self) -> bool:
        return (
            self.role_kind == RoleKind.COMMUNITY_EXPERT
            and self.verification_status == VerificationStatus.VERIFIED
        )

    # Queries

    def has_permission(self, token: PermissionToken) -> bool:
        """Check if this record grants a permission token.

        Inactive records grant nothing. A CommunityExpert holds expert-gated
        tokens only once verified.
        """
        if not self.is_active or token not in self.permissions:
            return False
        if self.role_kind == RoleKind.COMMUNITY_EXPERT and token in EXPERT_GATED_PERMISSIONS:
            return self.verification_status == VerificationStatus.VERIFIED
        return True

    def effective_permissions(self) -> FrozenSet[PermissionToken]:
        """Tokens this record currently grants."""
        return frozenset(token for token in self.permissions if self.has_permission(token))

    # Mutations

    def _require_expert(self) -> None:
        if self.role_kind != RoleKind.COMMUNITY_EXPERT:
            raise ValidationError(f"Verification applies to expert roles only, got {self.role_kind.value}")

    def verify(self, verified_by: UserId) -> None:
        """Mark an expert record verified."""
        self._require_expert()
        self.verification_status = VerificationStatus.VERIFIED
        self.verified_at = utc_now()
        self.verified_by = verified_by
        self.updated_at = utc_now()

    def reject(self) -> None:
        """Mark an expert record rejected."""
        self._require_expert()
        self.verification_status = VerificationStatus.REJECTED
        self.updated_at = utc_now()

    def deactivate(self) -> None:
        """Soft-disable the record; it stays stored for audit."""
        self.is_active = False
        self.deactivated_at = utc_now()
        self.updated_at = utc_now()

    def reactivate(self, granted_by: Optional[UserId] = None) -> None:
        """Re-enable a disabled record as a fresh grant."""
        self.is_active = True
        self.deactivated_at = None
        self.granted_by = granted_by
        self.granted_at = utc_now()
        if not self.permissions_overridden:
            self.permissions = derive_permissions(self.role_kind)
        if self.role_kind == RoleKind.COMMUNITY_EXPERT:
            self.verification_status = VerificationStatus.PENDING
            self.verified_at = None
            self.verified_by = None
        self.updated_at = utc_now()

    def override_permissions(self, tokens: Iterable[Any]) -> None:
        """Replace the derived permission set with an explicit one."""
        self.permissions = parse_permission_tokens(tokens)
        self.permissions_overridden = True
        self.updated_at = utc_now()

    def rederive_permissions(self) -> None:
        """Drop any override and recompute permissions from the role kind."""
        self.permissions = derive_permissions(self.role_kind)
        self.permissions_overridden = False
        self.updated_at = utc_now()

    def change_kind(self, new_kind: RoleKind, rederive: bool = False) -> None:
        """Change the role kind within the same scope level.

        Permissions are recomputed from the new kind unless the record carries
        an explicit override and ``rederive`` is False.
        """
        validate_role_scope(new_kind, self.scope)
        self.role_kind = new_kind
        if rederive or not self.permissions_overridden:
            self.rederive_permissions()
        if new_kind == RoleKind.COMMUNITY_EXPERT:
            self.verification_status = self.verification_status or VerificationStatus.PENDING
        else:
            self.expertise_areas = []
            self.credentials = None
            self.verification_status = None
            self.verified_at = None
            self.verified_by = None
        self.updated_at = utc_now()

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "subject_user_id": str(self.subject_user_id),
            "role_kind": self.role_kind.value,
            "scope_level": self.scope.level.value,
            "scope_community_id": str(self.scope_community_id) if self.scope_community_id else None,
            "scope_group_id": str(self.scope_group_id) if self.scope_group_id else None,
            "permissions": sorted(token.value for token in self.permissions),
            "is_active": self.is_active,
            "permissions_overridden": self.permissions_overridden,
            "granted_by": str(self.granted_by) if self.granted_by else None,
            "granted_at": self.granted_at.isoformat(),
            "expertise_areas": [area.value for area in self.expertise_areas],
            "credentials": self.credentials,
            "verification_status": self.verification_status.value if self.verification_status else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "verified_by": str(self.verified_by) if self.verified_by else None,
            "deactivated_at": self.deactivated_at.isoformat() if self.deactivated_at else None,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoleRecord':
        """Rebuild a record from ``to_dict`` output."""
        level = ScopeLevel(data["scope_level"])
        if level == ScopeLevel.PLATFORM:
            scope = Scope.platform()
        elif level == ScopeLevel.COMMUNITY:
            scope = Scope.community(CommunityId(data["scope_community_id"]))
        else:
            scope = Scope.group(GroupId(data["scope_group_id"]))

        def _dt(value: Optional[str]) -> Optional[datetime]:
            return datetime.fromisoformat(value) if value else None

        return cls(
            id=data["id"],
            subject_user_id=UserId(data["subject_user_id"]),
            role_kind=RoleKind(data["role_kind"]),
            scope=scope,
            permissions=parse_permission_tokens(data.get("permissions", [])),
            is_active=data.get("is_active", True),
            permissions_overridden=data.get("permissions_overridden", False),
            granted_by=UserId(data["granted_by"]) if data.get("granted_by") else None,
            granted_at=_dt(data.get("granted_at")) or utc_now(),
            expertise_areas=[ExpertiseArea(area) for area in data.get("expertise_areas", [])],
            credentials=data.get("credentials"),
            verification_status=(
                VerificationStatus(data["verification_status"]) if data.get("verification_status") else None
            ),
            verified_at=_dt(data.get("verified_at")),
            verified_by=UserId(data["verified_by"]) if data.get("verified_by") else None,
            deactivated_at=_dt(data.get("deactivated_at")),
            updated_at=_dt(data.get("updated_at")) or utc_now(),
        )

    def __str__(self) -> str:
        return f"RoleRecord({self.role_kind.value}@{self.scope.key})"

    def __repr__(self) -> str:
        flags = []
        if not self.is_active:
            flags.append("inactive")
        if self.permissions_overridden:
            flags.append("override")
        if self.verification_status:
            flags.append(self.verification_status.value)
        flag_info = f" [{', '.join(flags)}]" if flags else ""
        return (
            f"RoleRecord({self.subject_user_id}, {self.role_kind.value}@{self.scope.key}, "
            f"permissions={len(self.permissions)}{flag_info})"
        )
