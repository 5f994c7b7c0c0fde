"""Tests for the pure permission resolver."""

import pytest

from community_access.config import PermissionToken, RoleKind
from community_access.core.value_objects import CommunityId, GroupId, Scope, UserId
from community_access.features.roles import PermissionResolver, RoleRecord


@pytest.fixture
def resolver():
    return PermissionResolver()


@pytest.fixture
def subject():
    return UserId.generate()


@pytest.fixture
def community_id():
    return CommunityId.generate()


@pytest.fixture
def group_scope(community_id):
    """A group query scope chained to its parent community."""
    return Scope.group(GroupId.generate(), community_id)


def grant(subject, kind, scope):
    return RoleRecord.grant(subject, kind, scope)


class TestPlatformAdminShortcut:
    """PlatformAdmin bypasses every scope check."""

    def test_admin_holds_every_token_everywhere(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.PLATFORM_ADMIN, Scope.platform())]
        for token in PermissionToken:
            assert resolver.has_permission(records, token, group_scope)
            assert resolver.has_permission(records, token, Scope.group(GroupId.generate()))

    def test_inactive_admin_grants_nothing(self, resolver, subject, group_scope):
        record = grant(subject, RoleKind.PLATFORM_ADMIN, Scope.platform())
        record.deactivate()
        assert not resolver.has_permission([record], PermissionToken.BAN_USERS, group_scope)
        assert not resolver.is_platform_admin([record])


class TestScopeResolution:
    """Grants apply at their scope and every enclosed scope."""

    def test_community_moderator_applies_to_chained_group(self, resolver, subject, community_id, group_scope):
        records = [grant(subject, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))]
        assert resolver.has_permission(records, PermissionToken.BAN_USERS, group_scope)
        assert resolver.has_permission(records, PermissionToken.BAN_USERS, Scope.community(community_id))

    def test_community_moderator_not_in_other_community(self, resolver, subject, community_id):
        records = [grant(subject, RoleKind.COMMUNITY_MODERATOR, Scope.community(community_id))]
        other = Scope.group(GroupId.generate(), CommunityId.generate())
        assert not resolver.has_permission(records, PermissionToken.BAN_USERS, other)

    def test_group_grant_does_not_leak_to_sibling_or_community(self, resolver, subject, community_id, group_scope):
        records = [grant(subject, RoleKind.GROUP_ADMIN, group_scope)]
        assert resolver.has_permission(records, PermissionToken.MANAGE_GROUPS, group_scope)
        assert not resolver.has_permission(
            records, PermissionToken.MANAGE_GROUPS, Scope.group(GroupId.generate(), community_id)
        )
        assert not resolver.has_permission(records, PermissionToken.MANAGE_GROUPS, Scope.community(community_id))

    def test_token_outside_role_denied(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.GROUP_MODERATOR, group_scope)]
        assert not resolver.has_permission(records, PermissionToken.VIEW_REPORTS, group_scope)
        assert not resolver.has_permission(records, PermissionToken.DELETE_COMMUNITY, group_scope)

    def test_ordinary_user_holds_nothing(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.ORDINARY_USER, Scope.platform())]
        assert resolver.effective_permissions(records, group_scope) == frozenset()

    def test_no_records_denies(self, resolver, group_scope):
        assert not resolver.has_permission([], PermissionToken.PIN_POSTS, group_scope)


class TestTokens:
    """Tokens may be passed as strings; unknown ones deny."""

    def test_string_token(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.GROUP_MODERATOR, group_scope)]
        assert resolver.has_permission(records, "pin_posts", group_scope)

    def test_unknown_token_denies_even_for_admin(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.PLATFORM_ADMIN, Scope.platform())]
        assert not resolver.has_permission(records, "launch_missiles", group_scope)

    def test_any_and_all(self, resolver, subject, group_scope):
        records = [grant(subject, RoleKind.GROUP_MODERATOR, group_scope)]
        tokens = [PermissionToken.PIN_POSTS, PermissionToken.VIEW_REPORTS]
        assert resolver.has_any_permission(records, tokens, group_scope)
        assert not resolver.has_all_permissions(records, tokens, group_scope)


class TestExpertGating:
    """mark_best_answer requires a verified expert."""

    def test_pending_expert_denied(self, resolver, subject, community_id, group_scope):
        records = [grant(subject, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))]
        assert not resolver.has_permission(records, PermissionToken.MARK_BEST_ANSWER, group_scope)

    def test_verified_expert_allowed(self, resolver, subject, community_id, group_scope):
        record = grant(subject, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        record.verify(UserId.generate())
        assert resolver.has_permission([record], PermissionToken.MARK_BEST_ANSWER, group_scope)

    def test_holds_role_verified_only(self, resolver, subject, community_id):
        record = grant(subject, RoleKind.COMMUNITY_EXPERT, Scope.community(community_id))
        scope = Scope.community(community_id)
        assert resolver.holds_role([record], [RoleKind.COMMUNITY_EXPERT], scope)
        assert not resolver.holds_role([record], [RoleKind.COMMUNITY_EXPERT], scope, verified_only=True)
        record.verify(UserId.generate())
        assert resolver.holds_role([record], [RoleKind.COMMUNITY_EXPERT], scope, verified_only=True)


def test_override_narrows_permissions(resolver, subject, group_scope):
    record = grant(subject, RoleKind.GROUP_ADMIN, group_scope)
    record.override_permissions([PermissionToken.PIN_POSTS])
    assert resolver.effective_permissions([record], group_scope) == {PermissionToken.PIN_POSTS}
    assert not resolver.has_permission([record], PermissionToken.BAN_USERS, group_scope)
