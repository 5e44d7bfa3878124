"""
Tests for member administration.
"""
import pytest

from models import Role, GrantStatus
from services.authorization import AuthorizationEngine
from services.exceptions import Forbidden, InvariantViolation, NotFound
from services.grant_store import GrantStore
from services.membership_service import MembershipService


def _membership(db):
    return MembershipService(db, AuthorizationEngine(db))


class TestMembership:

    def test_list_members(self, db, world):
        GrantStore(db).upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        members = _membership(db).list_members(world.sunset, world.owner)

        assert [(m.user_id, m.role) for m in members] == [(world.owner, Role.OWNER), (world.agent, Role.LEASING_AGENT)]
        assert members[1].email == "a@x.com"
        assert members[1].flags["can_manage_tenants"] is True

    def test_list_requires_manage_users(self, db, world):
        GrantStore(db).upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        with pytest.raises(Forbidden):
            _membership(db).list_members(world.sunset, world.agent)

    def test_change_role(self, db, world):
        GrantStore(db).upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.ACTIVE)
        grant = _membership(db).change_role(world.sunset, world.agent, Role.PROPERTY_MANAGER, world.owner)
        assert grant.role == Role.PROPERTY_MANAGER

    def test_change_role_of_non_member(self, db, world):
        with pytest.raises(NotFound):
            _membership(db).change_role(world.sunset, world.outsider, Role.VIEWER, world.owner)

    def test_owner_cannot_demote_self_when_sole_owner(self, db, world):
        with pytest.raises(InvariantViolation):
            _membership(db).change_role(world.sunset, world.owner, Role.VIEWER, world.owner)

    def test_remove_member(self, db, world):
        GrantStore(db).upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        membership = _membership(db)
        grant = membership.remove_member(world.sunset, world.agent, world.owner)

        assert grant.status == GrantStatus.REVOKED
        assert [m.user_id for m in membership.list_members(world.sunset, world.owner)] == [world.owner]
        assert len(membership.list_members(world.sunset, world.owner, include_inactive=True)) == 2

    def test_sole_owner_cannot_be_removed(self, db, world):
        with pytest.raises(InvariantViolation):
            _membership(db).remove_member(world.sunset, world.owner, world.owner)
