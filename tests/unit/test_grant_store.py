"""
Tests for GrantStore: unique pairs and the sole-owner invariant.
"""
import pytest

from models import Property, PropertyGrant, Role, GrantStatus
from services.access_cache import AccessCache, GrantSnapshot, is_missing
from services.exceptions import InvariantViolation, NotFound
from services.grant_store import GrantStore


def _rows(db, property_id, user_id):
    return (
        db.query(PropertyGrant)
        .filter(PropertyGrant.property_id == property_id, PropertyGrant.user_id == user_id)
        .count()
    )


class TestUpsert:
    """Tests for GrantStore.upsert"""

    def test_repeated_upserts_keep_one_row(self, db, world):
        grants = GrantStore(db)
        for role in (Role.VIEWER, Role.LEASING_AGENT, Role.PROPERTY_MANAGER, Role.VIEWER):
            grants.upsert(world.sunset, world.agent, role, GrantStatus.ACTIVE, invited_by=world.owner)
        db.commit()

        assert _rows(db, world.sunset, world.agent) == 1
        assert grants.get(world.sunset, world.agent).role == Role.VIEWER

    def test_upsert_refreshes_updated_at(self, db, world):
        grants = GrantStore(db)
        first = grants.upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.PENDING)
        stamp = first.updated_at
        second = grants.upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.ACTIVE)

        assert second.id == first.id
        assert second.updated_at >= stamp
        assert second.accepted_at is not None

    def test_keeps_invited_by_when_not_given(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.ACTIVE, invited_by=world.owner)
        grant = grants.upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        assert grant.invited_by == world.owner

    def test_demoting_sole_owner_is_refused(self, db, world):
        grants = GrantStore(db)
        with pytest.raises(InvariantViolation):
            grants.upsert(world.sunset, world.owner, Role.VIEWER, GrantStatus.ACTIVE)

        db.rollback()
        grant = grants.get(world.sunset, world.owner)
        assert grant.role == Role.OWNER
        assert grant.status == GrantStatus.ACTIVE

    def test_demoting_owner_allowed_when_another_owner_exists(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.manager, Role.OWNER, GrantStatus.ACTIVE)
        grant = grants.upsert(world.sunset, world.owner, Role.PROPERTY_MANAGER, GrantStatus.ACTIVE)
        assert grant.role == Role.PROPERTY_MANAGER
        assert grants.active_owner_count(world.sunset) == 1

    def test_member_on_ownerless_property_is_refused(self, db, world):
        grants = GrantStore(db)
        with pytest.raises(InvariantViolation):
            grants.upsert(world.bayview, world.agent, Role.VIEWER, GrantStatus.ACTIVE)

        db.rollback()
        assert grants.list_for_property(world.bayview) == []

    def test_pending_owner_does_not_count(self, db, world):
        with pytest.raises(InvariantViolation):
            GrantStore(db).upsert(world.bayview, world.legacy, Role.OWNER, GrantStatus.PENDING)

    def test_new_property_takes_members_after_its_owner(self, db, world):
        fresh = Property(property_name="Harbor View", city="Cebu")
        db.add(fresh)
        db.flush()
        grants = GrantStore(db)

        with pytest.raises(InvariantViolation):
            grants.upsert(fresh.id, world.agent, Role.VIEWER, GrantStatus.ACTIVE)

        grants.upsert(fresh.id, world.manager, Role.OWNER, GrantStatus.ACTIVE)
        grants.upsert(fresh.id, world.agent, Role.VIEWER, GrantStatus.ACTIVE)
        assert grants.active_owner_count(fresh.id) == 1
        assert len(grants.list_for_property(fresh.id)) == 2


class TestDeactivate:
    """Tests for GrantStore.deactivate"""

    def test_sole_owner_cannot_be_deactivated(self, db, world):
        grants = GrantStore(db)
        with pytest.raises(InvariantViolation):
            grants.deactivate(world.sunset, world.owner, GrantStatus.REVOKED)
        assert grants.get(world.sunset, world.owner).status == GrantStatus.ACTIVE

    def test_deactivate_member(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        grant = grants.deactivate(world.sunset, world.agent)
        assert grant.status == GrantStatus.INACTIVE
        assert world.sunset not in {g.property_id for g in grants.list_for_user(world.agent)}

    def test_missing_grant(self, db, world):
        with pytest.raises(NotFound):
            GrantStore(db).deactivate(world.sunset, world.outsider)

    def test_rejects_non_terminal_status(self, db, world):
        with pytest.raises(ValueError):
            GrantStore(db).deactivate(world.sunset, world.owner, GrantStatus.ACTIVE)


class TestReads:
    """Tests for get / list_for_user / list_for_property"""

    def test_get_missing_raises(self, db, world):
        with pytest.raises(NotFound):
            GrantStore(db).get(world.bayview, world.legacy)

    def test_list_for_user_returns_active_only(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.PENDING)
        grants.upsert(world.acacia, world.agent, Role.VIEWER, GrantStatus.ACTIVE)

        assert [g.property_id for g in grants.list_for_user(world.agent)] == [world.acacia]

    def test_list_for_property_filters_status(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.PENDING)

        assert len(grants.list_for_property(world.sunset)) == 2
        assert [g.user_id for g in grants.list_for_property(world.sunset, GrantStatus.ACTIVE)] == [world.owner]


class TestCacheInvalidation:
    """Writes drop cached decisions for the pair."""

    def test_upsert_invalidates_pair(self, db, world):
        cache = AccessCache(max_entries=10, ttl_seconds=60)
        cache.put(world.agent, world.sunset, None)
        cache.put(world.agent, world.acacia, GrantSnapshot(Role.VIEWER))

        GrantStore(db, cache=cache).upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.ACTIVE)

        assert is_missing(cache.get(world.agent, world.sunset))
        assert cache.get(world.agent, world.acacia) == GrantSnapshot(Role.VIEWER)

    def test_commit_invalidates_again(self, db, world):
        cache = AccessCache(max_entries=10, ttl_seconds=60)
        GrantStore(db, cache=cache).upsert(world.sunset, world.agent, Role.VIEWER, GrantStatus.ACTIVE)
        # A concurrent reader caches the pre-commit view
        cache.put(world.agent, world.sunset, None)
        db.commit()

        assert is_missing(cache.get(world.agent, world.sunset))


class TestGrantModel:
    """Helpers on the PropertyGrant model."""

    def test_active_owner_flags(self):
        grant = PropertyGrant(role=Role.OWNER, status=GrantStatus.ACTIVE)
        assert grant.is_active
        assert grant.is_active_owner

        grant.status = GrantStatus.REVOKED
        assert not grant.is_active
        assert not grant.is_active_owner

    def test_property_relationship(self, db, world):
        grant = GrantStore(db).get(world.sunset, world.owner)
        assert grant.property.property_name == "Sunset Condos"
        assert grant.is_active_owner
