"""Permission resolution over already-loaded role records.

The resolver is pure and synchronous: it never loads data, never blocks and
never raises for unknown tokens or scope ids. Anything it cannot match
resolves to False.

Resolution order:

1. Inactive records are ignored.
2. An active PlatformAdmin record grants every token at every scope. This
   is an intentional absolute-authority shortcut, not a missing scope check.
3. Remaining records apply only if their scope covers the query scope: a
   platform grant covers everything, a community grant covers the community
   and groups chained to it, a group grant covers only that group.
4. A covering record grants the token if its permission set holds it; a
   CommunityExpert grants expert-gated tokens only once verified.
"""

import logging
from typing import FrozenSet, Iterable, List, Optional, Union

from ....config.constants import PermissionToken, RoleKind
from ....core.value_objects import Scope, UserId
from ..entities import ALL_PERMISSIONS, RoleRecord

logger = logging.getLogger(__name__)


TokenLike = Union[PermissionToken, str]


def _parse_token(token: TokenLike) -> Optional[PermissionToken]:
    try:
        return PermissionToken(token)
    except ValueError:
        return None


class PermissionResolver:
    """Computes effective permissions from a user's role records."""

    @staticmethod
    def active_records(records: Iterable[RoleRecord], user_id: Optional[UserId] = None) -> List[RoleRecord]:
        """Active records, restricted to ``user_id`` when given."""
        return [
            record for record in records
            if record.is_active and (user_id is None or record.subject_user_id == user_id)
        ]

    @staticmethod
    def is_platform_admin(records: Iterable[RoleRecord]) -> bool:
        """Check for an active PlatformAdmin grant."""
        return any(record.is_platform_admin for record in records)

    def applicable_records(self, records: Iterable[RoleRecord], scope: Scope) -> List[RoleRecord]:
        """Active records whose scope covers the query scope."""
        return [record for record in self.active_records(records) if record.scope.covers(scope)]

    def has_permission(self, records: Iterable[RoleRecord], token: TokenLike, scope: Scope) -> bool:
        """Answer whether the records grant ``token`` at ``scope``."""
        permission = _parse_token(token)
        if permission is None:
            logger.debug(f"Unknown permission token {token!r} resolves to deny")
            return False

        active = self.active_records(records)
        if self.is_platform_admin(active):
            return True

        return any(record.has_permission(permission) for record in active if record.scope.covers(scope))

    def has_any_permission(self, records: Iterable[RoleRecord], tokens: Iterable[TokenLike], scope: Scope) -> bool:
        records = list(records)
        return any(self.has_permission(records, token, scope) for token in tokens)

    def has_all_permissions(self, records: Iterable[RoleRecord], tokens: Iterable[TokenLike], scope: Scope) -> bool:
        records = list(records)
        return all(self.has_permission(records, token, scope) for token in tokens)

    def effective_permissions(self, records: Iterable[RoleRecord], scope: Scope) -> FrozenSet[PermissionToken]:
        """Every token the records grant at ``scope``."""
        active = self.active_records(records)
        if self.is_platform_admin(active):
            return ALL_PERMISSIONS

        granted = set()
        for record in active:
            if record.scope.covers(scope):
                granted |= record.effective_permissions()
        return frozenset(granted)

    def holds_role(
        self,
        records: Iterable[RoleRecord],
        role_kinds: Iterable[RoleKind],
        scope: Scope,
        verified_only: bool = False,
    ) -> bool:
        """Check for an active grant of one of ``role_kinds`` covering ``scope``.

        With ``verified_only`` a CommunityExpert grant counts only once verified.
        """
        kinds = set(role_kinds)
        for record in self.applicable_records(records, scope):
            if record.role_kind not in kinds:
                continue
            if verified_only and record.role_kind == RoleKind.COMMUNITY_EXPERT and not record.is_verified_expert:
                continue
            return True
        return False
