"""Static role-to-permission table.

Every RoleKind maps to a fixed permission set and a single scope level. The
mapping is total: adding a RoleKind without an entry here fails at import.
"""

from typing import Dict, FrozenSet

from ....config.constants import PermissionToken, RoleKind, ScopeLevel


ALL_PERMISSIONS: FrozenSet[PermissionToken] = frozenset(PermissionToken)

ROLE_PERMISSIONS: Dict[RoleKind, FrozenSet[PermissionToken]] = {
    RoleKind.PLATFORM_ADMIN: ALL_PERMISSIONS,
    RoleKind.COMMUNITY_MODERATOR: frozenset({
        PermissionToken.MANAGE_GROUPS,
        PermissionToken.MODERATE_POSTS,
        PermissionToken.BAN_USERS,
        PermissionToken.VIEW_REPORTS,
        PermissionToken.PIN_POSTS,
    }),
    RoleKind.COMMUNITY_EXPERT: frozenset({
        PermissionToken.MARK_BEST_ANSWER,
    }),
    RoleKind.GROUP_ADMIN: frozenset({
        PermissionToken.MANAGE_GROUPS,
        PermissionToken.MODERATE_POSTS,
        PermissionToken.BAN_USERS,
        PermissionToken.VIEW_REPORTS,
        PermissionToken.PIN_POSTS,
    }),
    RoleKind.GROUP_MODERATOR: frozenset({
        PermissionToken.MODERATE_POSTS,
        PermissionToken.BAN_USERS,
        PermissionToken.PIN_POSTS,
    }),
    RoleKind.ORDINARY_USER: frozenset(),
}

ROLE_SCOPE_LEVELS: Dict[RoleKind, ScopeLevel] = {
    RoleKind.PLATFORM_ADMIN: ScopeLevel.PLATFORM,
    RoleKind.COMMUNITY_MODERATOR: ScopeLevel.COMMUNITY,
    RoleKind.COMMUNITY_EXPERT: ScopeLevel.COMMUNITY,
    RoleKind.GROUP_ADMIN: ScopeLevel.GROUP,
    RoleKind.GROUP_MODERATOR: ScopeLevel.GROUP,
    RoleKind.ORDINARY_USER: ScopeLevel.PLATFORM,
}

# Held by a CommunityExpert only once verified
EXPERT_GATED_PERMISSIONS: FrozenSet[PermissionToken] = frozenset({
    PermissionToken.MARK_BEST_ANSWER,
})

# Tokens that count as moderation authority over a group
MODERATION_PERMISSIONS: FrozenSet[PermissionToken] = frozenset({
    PermissionToken.BAN_USERS,
    PermissionToken.MODERATE_POSTS,
})

# Display ordering only; lower sorts first. Bypass is PlatformAdmin-only.
ROLE_PRECEDENCE: Dict[RoleKind, int] = {
    RoleKind.PLATFORM_ADMIN: 1,
    RoleKind.GROUP_ADMIN: 2,
    RoleKind.COMMUNITY_MODERATOR: 2,
    RoleKind.GROUP_MODERATOR: 3,
    RoleKind.COMMUNITY_EXPERT: 4,
    RoleKind.ORDINARY_USER: 5,
}

_missing = set(RoleKind) - set(ROLE_PERMISSIONS) | set(RoleKind) - set(ROLE_SCOPE_LEVELS)
if _missing:
    raise RuntimeError(f"Role tables are missing entries for: {sorted(k.value for k in _missing)}")


def derive_permissions(role_kind: RoleKind) -> FrozenSet[PermissionToken]:
    """Get the fixed permission set for a role kind."""
    return ROLE_PERMISSIONS[role_kind]


def scope_level_for(role_kind: RoleKind) -> ScopeLevel:
    """Get the scope level a role kind is granted at."""
    return ROLE_SCOPE_LEVELS[role_kind]


def parse_permission_tokens(values) -> FrozenSet[PermissionToken]:
    """Parse permission token strings, rejecting unknown tokens."""
    tokens = set()
    for value in values:
        try:
            tokens.add(PermissionToken(value))
        except ValueError:
            raise ValueError(f"Unknown permission token: {value!r}")
    return frozenset(tokens)
