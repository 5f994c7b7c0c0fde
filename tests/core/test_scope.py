"""Tests for the Scope value object."""

import pytest

from community_access.config import ScopeLevel
from community_access.core.value_objects import CommunityId, GroupId, Scope


class TestScopeConstruction:
    """Test scope validation and constructors."""

    def test_platform_scope_has_no_ids(self):
        scope = Scope.platform()
        assert scope.is_platform
        assert scope.community_id is None
        assert scope.group_id is None
        assert scope.key == "platform"

    def test_platform_scope_rejects_ids(self):
        with pytest.raises(ValueError):
            Scope(ScopeLevel.PLATFORM, community_id=CommunityId.generate())

    def test_community_scope_requires_community_id(self):
        with pytest.raises(ValueError):
            Scope(ScopeLevel.COMMUNITY)

    def test_group_scope_requires_group_id(self):
        with pytest.raises(ValueError):
            Scope(ScopeLevel.GROUP, community_id=CommunityId.generate())

    def test_group_scope_identity_drops_parent(self):
        group_id = GroupId.generate()
        chained = Scope.group(group_id, CommunityId.generate())
        assert chained.identity() == Scope.group(group_id)
        assert chained.key == f"group:{group_id}"

    def test_with_parent_only_for_groups(self):
        with pytest.raises(ValueError):
            Scope.community(CommunityId.generate()).with_parent(CommunityId.generate())


class TestScopeCovers:
    """Test which grant scopes apply to which query scopes."""

    def test_platform_covers_everything(self):
        community_id = CommunityId.generate()
        grant = Scope.platform()
        assert grant.covers(Scope.platform())
        assert grant.covers(Scope.community(community_id))
        assert grant.covers(Scope.group(GroupId.generate(), community_id))
        assert grant.covers(Scope.group(GroupId.generate()))

    def test_community_covers_itself_and_chained_groups(self):
        community_id = CommunityId.generate()
        grant = Scope.community(community_id)
        assert grant.covers(Scope.community(community_id))
        assert grant.covers(Scope.group(GroupId.generate(), community_id))

    def test_community_does_not_cover_other_communities_or_platform(self):
        grant = Scope.community(CommunityId.generate())
        assert not grant.covers(Scope.community(CommunityId.generate()))
        assert not grant.covers(Scope.group(GroupId.generate(), CommunityId.generate()))
        assert not grant.covers(Scope.platform())

    def test_community_does_not_cover_unchained_group(self):
        grant = Scope.community(CommunityId.generate())
        assert not grant.covers(Scope.group(GroupId.generate()))

    def test_group_covers_only_same_group(self):
        group_id = GroupId.generate()
        community_id = CommunityId.generate()
        grant = Scope.group(group_id)
        assert grant.covers(Scope.group(group_id))
        assert grant.covers(Scope.group(group_id, community_id))
        assert not grant.covers(Scope.group(GroupId.generate(), community_id))
        assert not grant.covers(Scope.community(community_id))
        assert not grant.covers(Scope.platform())
