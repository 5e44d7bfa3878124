"""
Tests for the invitation state machine: issue, accept, revoke, expiry.
"""
from datetime import timedelta

import pytest

from models import Property, PropertyGrant, PropertyInvitation, InvitationStatus, Role, GrantStatus, Tenant, utcnow
from services.authorization import AuthorizationEngine
from services.exceptions import AlreadyResolved, Expired, Forbidden, InvalidTransition, InvariantViolation, NotFound
from services.grant_store import GrantStore
from services.invitation_store import InvitationStore
from services.invitation_workflow import InvitationWorkflow


def _workflow(db):
    return InvitationWorkflow(db, AuthorizationEngine(db))


def _grant_count(db, property_id):
    return db.query(PropertyGrant).filter(PropertyGrant.property_id == property_id).count()


def _status(db, invitation_id):
    return db.query(PropertyInvitation.status).filter(PropertyInvitation.id == invitation_id).scalar()


class TestIssue:
    """Tests for InvitationWorkflow.issue"""

    def test_issue_creates_pending_invitation(self, db, world):
        before = utcnow()
        invitation = _workflow(db).issue(world.sunset, "A@X.com", Role.LEASING_AGENT, world.owner)

        assert invitation.status == InvitationStatus.PENDING
        assert invitation.email == "a@x.com"
        assert len(invitation.token) >= 32
        assert timedelta(days=6, hours=23) < invitation.expires_at - before <= timedelta(days=7, seconds=5)

    def test_invitee_needs_no_account(self, db, world):
        invitation = _workflow(db).issue(world.sunset, "new.person@example.com", Role.VIEWER, world.owner)
        assert invitation.id is not None

    def test_tokens_are_unique(self, db, world):
        workflow = _workflow(db)
        tokens = {workflow.issue(world.sunset, f"p{i}@example.com", Role.VIEWER, world.owner).token for i in range(5)}
        assert len(tokens) == 5

    def test_requires_manage_users(self, db, world):
        GrantStore(db).upsert(world.sunset, world.manager, Role.PROPERTY_MANAGER, GrantStatus.ACTIVE)
        with pytest.raises(Forbidden):
            _workflow(db).issue(world.sunset, "a@x.com", Role.VIEWER, world.manager)

    def test_outsider_is_forbidden(self, db, world):
        with pytest.raises(Forbidden):
            _workflow(db).issue(world.sunset, "a@x.com", Role.VIEWER, world.outsider)

    def test_unknown_property(self, db, world):
        with pytest.raises(NotFound):
            _workflow(db).issue(999, "a@x.com", Role.VIEWER, world.owner)

    def test_reissue_supersedes_pending(self, db, world):
        workflow = _workflow(db)
        first = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        second = workflow.issue(world.sunset, "a@x.com", Role.LEASING_AGENT, world.owner)
        db.commit()

        assert first.status == InvitationStatus.REVOKED
        assert second.status == InvitationStatus.PENDING
        with pytest.raises(AlreadyResolved):
            workflow.accept(first.token, world.agent)

    def test_unknown_overrides_are_dropped(self, db, world):
        invitation = _workflow(db).issue(
            world.sunset, "a@x.com", Role.VIEWER, world.owner,
            permissions={"manage_tenants": True, "launch_rockets": True},
        )
        assert invitation.permissions == {"manage_tenants": True}


class TestAccept:
    """Tests for InvitationWorkflow.accept"""

    def test_round_trip(self, db, world):
        workflow = _workflow(db)
        token = workflow.issue(world.sunset, "a@x.com", Role.LEASING_AGENT, world.owner).token

        grant = workflow.accept(token, world.agent)
        db.commit()

        assert (grant.property_id, grant.user_id, grant.role, grant.status) == (
            world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE,
        )
        assert grant.invited_by == world.owner
        assert grant.accepted_at is not None

        invitation = db.query(PropertyInvitation).filter(PropertyInvitation.token == token).one()
        assert invitation.status == InvitationStatus.ACTIVE
        assert invitation.accepted_by == world.agent

        engine = AuthorizationEngine(db)
        assert engine.has_permission(world.agent, world.sunset, "manage_tenants")
        assert not engine.has_permission(world.agent, world.sunset, "manage_users")

    def test_unknown_token(self, db, world):
        with pytest.raises(NotFound):
            _workflow(db).accept("not-a-real-token", world.agent)

    def test_single_use(self, db, world):
        workflow = _workflow(db)
        token = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner).token
        before = _grant_count(db, world.sunset)

        workflow.accept(token, world.agent)
        with pytest.raises(AlreadyResolved):
            workflow.accept(token, world.outsider)
        db.commit()

        assert _grant_count(db, world.sunset) == before + 1

    def test_expired_heals_then_already_resolved(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        with pytest.raises(Expired):
            workflow.accept(invitation.token, world.agent)
        db.rollback()

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.INACTIVE
        with pytest.raises(AlreadyResolved):
            workflow.accept(invitation.token, world.agent)
        assert GrantStore(db).find(world.sunset, world.agent) is None

    def test_expired_heal_leaves_caller_transaction_alone(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        # Unrelated work the caller has not committed yet
        db.add(Tenant(property_id=world.sunset, first_name="Pat", last_name="Pending", email="pat@example.com"))
        with pytest.raises(Expired):
            workflow.accept(invitation.token, world.agent)
        db.rollback()

        assert _status(db, invitation.id) == InvitationStatus.INACTIVE
        assert db.query(Tenant).filter(Tenant.property_id == world.sunset).count() == 1

    def test_unreconciled_property_gets_its_owner_first(self, db, world):
        workflow = _workflow(db)
        token = workflow.issue(world.bayview, "a@x.com", Role.VIEWER, world.legacy).token

        grant = workflow.accept(token, world.agent)
        db.commit()

        assert (grant.role, grant.status) == (Role.VIEWER, GrantStatus.ACTIVE)
        owner = GrantStore(db).get(world.bayview, world.legacy)
        assert (owner.role, owner.status) == (Role.OWNER, GrantStatus.ACTIVE)

    def test_ownerless_property_refuses_members(self, db, world):
        fresh = Property(property_name="Harbor View", city="Cebu")
        db.add(fresh)
        db.flush()
        invitation = InvitationStore(db).create(fresh.id, "a@x.com", Role.VIEWER, world.owner)

        with pytest.raises(InvariantViolation):
            _workflow(db).accept(invitation.token, world.agent)

        assert _status(db, invitation.id) == InvitationStatus.PENDING
        assert _grant_count(db, fresh.id) == 0

    def test_accept_never_downgrades(self, db, world):
        GrantStore(db).upsert(world.sunset, world.manager, Role.PROPERTY_MANAGER, GrantStatus.ACTIVE)
        workflow = _workflow(db)
        token = workflow.issue(world.sunset, "manager@example.com", Role.VIEWER, world.owner).token

        grant = workflow.accept(token, world.manager)
        assert grant.role == Role.PROPERTY_MANAGER

    def test_accept_reactivates_removed_member(self, db, world):
        grants = GrantStore(db)
        grants.upsert(world.sunset, world.agent, Role.LEASING_AGENT, GrantStatus.ACTIVE)
        grants.deactivate(world.sunset, world.agent, GrantStatus.REVOKED)
        workflow = _workflow(db)
        token = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner).token

        grant = workflow.accept(token, world.agent)
        assert (grant.role, grant.status) == (Role.VIEWER, GrantStatus.ACTIVE)
        assert _grant_count(db, world.sunset) == 2

    def test_overrides_carried_to_grant(self, db, world):
        workflow = _workflow(db)
        token = workflow.issue(
            world.sunset, "a@x.com", Role.VIEWER, world.owner, permissions={"manage_maintenance": True},
        ).token

        workflow.accept(token, world.agent)
        engine = AuthorizationEngine(db)
        assert engine.has_permission(world.agent, world.sunset, "manage_maintenance")
        assert not engine.has_permission(world.agent, world.sunset, "manage_tenants")


class TestAcceptRace:
    """Two sessions accepting the same token: exactly one wins."""

    def test_stale_reader_loses(self, session_factory, world):
        setup = session_factory()
        token = _workflow(setup).issue(world.sunset, "a@x.com", Role.LEASING_AGENT, world.owner).token
        setup.commit()
        setup.close()

        session_a = session_factory()
        session_b = session_factory()
        try:
            workflow_a = _workflow(session_a)
            workflow_b = _workflow(session_b)

            # A reads the invitation while it is still PENDING
            stale = workflow_a.invitations.find_by_token(token)
            assert stale.status == InvitationStatus.PENDING

            workflow_b.accept(token, world.outsider)
            session_b.commit()

            with pytest.raises(AlreadyResolved):
                workflow_a.accept(token, world.agent)
            session_a.rollback()
        finally:
            session_a.close()
            session_b.close()

        check = session_factory()
        try:
            grants = check.query(PropertyGrant).filter(PropertyGrant.property_id == world.sunset).all()
            assert sorted(g.user_id for g in grants) == sorted([world.owner, world.outsider])
            invitation = check.query(PropertyInvitation).filter(PropertyInvitation.token == token).one()
            assert invitation.accepted_by == world.outsider
        finally:
            check.close()


class TestRevoke:
    """Tests for InvitationWorkflow.revoke"""

    def test_revoke_pending(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)

        revoked = workflow.revoke(invitation.id, world.owner)
        assert revoked.status == InvitationStatus.REVOKED
        with pytest.raises(AlreadyResolved):
            workflow.accept(invitation.token, world.agent)

    def test_revoke_twice_is_invalid(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        workflow.revoke(invitation.id, world.owner)

        with pytest.raises(InvalidTransition):
            workflow.revoke(invitation.id, world.owner)

    def test_revoke_accepted_is_invalid(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        workflow.accept(invitation.token, world.agent)

        with pytest.raises(InvalidTransition):
            workflow.revoke(invitation.id, world.owner)

    def test_revoke_requires_manage_users(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        with pytest.raises(Forbidden):
            workflow.revoke(invitation.id, world.outsider)

    def test_revoke_unknown(self, db, world):
        with pytest.raises(NotFound):
            _workflow(db).revoke(12345, world.owner)

    def test_revoke_overdue_marks_inactive(self, db, world):
        workflow = _workflow(db)
        invitation = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        with pytest.raises(InvalidTransition):
            workflow.revoke(invitation.id, world.owner)
        db.rollback()

        assert _status(db, invitation.id) == InvitationStatus.INACTIVE


class TestListingAndSweep:
    """Tests for listing helpers and the expiry sweep."""

    def test_pending_for_user_matches_email(self, db, world):
        workflow = _workflow(db)
        workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        workflow.issue(world.acacia, "A@x.com", Role.LEASING_AGENT, world.owner)
        workflow.issue(world.acacia, "someone@else.com", Role.VIEWER, world.owner)

        mine = workflow.pending_for_user(world.agent)
        assert {i.property_id for i in mine} == {world.sunset, world.acacia}

    def test_list_for_property_requires_manage_users(self, db, world):
        workflow = _workflow(db)
        workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        assert len(workflow.list_for_property(world.sunset, world.owner)) == 1
        with pytest.raises(Forbidden):
            workflow.list_for_property(world.sunset, world.agent)

    def test_expire_overdue(self, db, world):
        workflow = _workflow(db)
        stale = workflow.issue(world.sunset, "a@x.com", Role.VIEWER, world.owner)
        fresh = workflow.issue(world.sunset, "b@x.com", Role.VIEWER, world.owner)
        stale.expires_at = utcnow() - timedelta(days=1)
        db.flush()

        assert workflow.expire_overdue() == 1
        db.refresh(stale)
        db.refresh(fresh)
        assert stale.status == InvitationStatus.INACTIVE
        assert fresh.status == InvitationStatus.PENDING
