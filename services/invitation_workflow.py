# services/invitation_workflow.py
"""
Invitation Workflow - issue, accept and revoke property invitations.

State machine:
     PENDING --accept--> ACTIVE
     PENDING --revoke--> REVOKED
     PENDING --expire--> INACTIVE

Accept writes the grant and marks the invitation inside one SAVEPOINT, and
the PENDING -> ACTIVE move is a conditional update, so two callers racing on
one token produce exactly one grant.

The workflow never sends email. Callers get the token and expiry back and
hand them to utils.email.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models import PropertyGrant, PropertyInvitation, InvitationStatus, GrantStatus, Role, utcnow
from services.authorization import AuthorizationEngine
from services.exceptions import AlreadyResolved, Expired, InvalidTransition, NotFound
from services.grant_store import GrantStore
from services.identity import IdentityProvider
from services.invitation_store import InvitationStore, normalize_email
from services.permissions import PermissionName, role_rank, to_permission
from services.property_directory import PropertyDirectory
from services.reconciler import LegacyOwnershipReconciler

logger = logging.getLogger(__name__)


class InvitationWorkflow:

     def __init__(
          self,
          db: Session,
          engine: AuthorizationEngine,
          grants: Optional[GrantStore] = None,
          invitations: Optional[InvitationStore] = None,
          directory: Optional[PropertyDirectory] = None,
          identity: Optional[IdentityProvider] = None,
          reconciler: Optional[LegacyOwnershipReconciler] = None,
     ):
          self.db = db
          self.engine = engine
          self.grants = grants or engine.grants
          self.invitations = invitations or InvitationStore(db)
          self.directory = directory or engine.directory
          self.identity = identity or IdentityProvider(db)
          self.reconciler = reconciler or engine.reconciler or LegacyOwnershipReconciler(
               db, grants=self.grants, directory=self.directory,
          )

     def issue(
          self,
          property_id: int,
          email: str,
          role: Role,
          invited_by: int,
          permissions: Optional[Dict[str, bool]] = None,
     ) -> PropertyInvitation:
          """
          Create a PENDING invitation with a fresh token.

          An earlier PENDING invitation for the same email and property is
          revoked first, so only the newest token can be accepted.

          Raises:
               NotFound: If the property does not exist.
               Forbidden: If invited_by lacks manage_users on the property.
          """
          self.directory.get(property_id)
          self.engine.require_permission(invited_by, property_id, PermissionName.MANAGE_USERS, resource="invitation")
          overrides = _clean_overrides(permissions)

          with self.db.begin_nested():
               for previous in self.invitations.find_pending(property_id, email):
                    if self.invitations.transition(previous.id, InvitationStatus.REVOKED):
                         logger.info("Superseded invitation id=%s for %s on property_id=%s", previous.id, previous.email, property_id)
               invitation = self.invitations.create(
                    property_id,
                    email,
                    role,
                    invited_by,
                    permissions=overrides,
               )

          logger.info(
               "Invitation issued: id=%s property_id=%s email=%s role=%s by user_id=%s",
               invitation.id, property_id, invitation.email, role.value, invited_by,
          )
          return invitation

     def accept(self, token: str, accepting_user_id: int, now: Optional[datetime] = None) -> PropertyGrant:
          """
          Redeem an invitation token for an ACTIVE grant.

          An expired invitation is marked INACTIVE in a session of its own
          before Expired is raised, so a second attempt reports AlreadyResolved
          while the caller's transaction is left alone.
          A property still owned only through landlord_id is reconciled first.
          Accepting never downgrades a higher role the user already holds.

          Raises:
               NotFound: Unknown token.
               AlreadyResolved: The invitation left PENDING already (or lost a race).
               Expired: The invitation's expiry has passed.
          """
          now = now or utcnow()
          invitation = self.invitations.find_by_token(token)
          if invitation is None:
               raise NotFound("Invitation not found", {"token": "invalid"})
          if invitation.status != InvitationStatus.PENDING:
               raise AlreadyResolved(
                    f"Invitation has already been resolved ({invitation.status.value})",
                    {"invitation_id": invitation.id, "status": invitation.status.value},
               )

          if invitation.is_expired(now):
               if self._mark_inactive(invitation.id):
                    logger.info("Invitation id=%s expired on accept; marked INACTIVE", invitation.id)
               raise Expired(
                    "Invitation has expired",
                    {"invitation_id": invitation.id, "expires_at": invitation.expires_at.isoformat()},
               )

          property_id = invitation.property_id
          role = invitation.role
          with self.db.begin_nested():
               won = self.invitations.transition(
                    invitation.id,
                    InvitationStatus.ACTIVE,
                    accepted_by=accepting_user_id,
                    accepted_at=now,
               )
               if not won:
                    raise AlreadyResolved(
                         "Invitation has already been resolved",
                         {"invitation_id": invitation.id},
                    )

               if not self.grants.has_active_owner(property_id):
                    self.reconciler.reconcile(property_id)

               existing = self.grants.find(property_id, accepting_user_id)
               if existing is not None and existing.is_active and role_rank(existing.role) > role_rank(role):
                    role = existing.role
               grant = self.grants.upsert(
                    property_id,
                    accepting_user_id,
                    role=role,
                    status=GrantStatus.ACTIVE,
                    invited_by=invitation.invited_by,
                    permissions=invitation.permissions or None,
                    accepted_at=now,
               )

          logger.info(
               "Invitation accepted: id=%s property_id=%s user_id=%s role=%s",
               invitation.id, property_id, accepting_user_id, role.value,
          )
          return grant

     def revoke(self, invitation_id: int, revoked_by: int, now: Optional[datetime] = None) -> PropertyInvitation:
          """
          Cancel a PENDING invitation.

          Raises:
               NotFound: Unknown invitation.
               Forbidden: revoked_by lacks manage_users on the invitation's property.
               InvalidTransition: The invitation is no longer PENDING.
          """
          now = now or utcnow()
          invitation = self.invitations.get(invitation_id)
          self.engine.require_permission(revoked_by, invitation.property_id, PermissionName.MANAGE_USERS, resource="invitation")

          if invitation.status == InvitationStatus.PENDING and invitation.is_expired(now):
               if self._mark_inactive(invitation.id):
                    logger.info("Invitation id=%s expired before revoke; marked INACTIVE", invitation.id)
               self.db.refresh(invitation)
          if invitation.status != InvitationStatus.PENDING:
               raise InvalidTransition(
                    f"Cannot revoke an invitation in status {invitation.status.value}",
                    {"invitation_id": invitation.id, "status": invitation.status.value},
               )

          if not self.invitations.transition(invitation.id, InvitationStatus.REVOKED):
               self.db.refresh(invitation)
               raise InvalidTransition(
                    f"Cannot revoke an invitation in status {invitation.status.value}",
                    {"invitation_id": invitation.id, "status": invitation.status.value},
               )
          logger.info("Invitation revoked: id=%s by user_id=%s", invitation.id, revoked_by)
          return invitation

     def list_for_property(
          self,
          property_id: int,
          actor_id: int,
          status: Optional[InvitationStatus] = None,
     ) -> List[PropertyInvitation]:
          """Invitations on a property (manage_users required)."""
          self.directory.get(property_id)
          self.engine.require_permission(actor_id, property_id, PermissionName.MANAGE_USERS, resource="invitation")
          return self.invitations.list_for_property(property_id, status=status)

     def pending_for_user(self, user_id: int) -> List[PropertyInvitation]:
          """Unexpired PENDING invitations addressed to the user's email."""
          email = self.identity.email_of(user_id)
          if not email:
               return []
          return self.invitations.list_pending_for_email(email)

     def pending_for_email(self, email: str) -> List[PropertyInvitation]:
          return self.invitations.list_pending_for_email(normalize_email(email))

     def expire_overdue(self, now: Optional[datetime] = None) -> int:
          """Housekeeping sweep: PENDING invitations past expiry become INACTIVE."""
          count = self.invitations.expire_overdue(now)
          if count:
               logger.info("Expired %s overdue invitation(s)", count)
          return count

     def _mark_inactive(self, invitation_id: int) -> bool:
          """Persist PENDING -> INACTIVE through a short session on the same bind."""
          with Session(bind=self.db.get_bind()) as session:
               healed = InvitationStore(session).transition(invitation_id, InvitationStatus.INACTIVE)
               session.commit()
          return healed


def _clean_overrides(permissions: Optional[Dict[str, bool]]) -> Dict[str, bool]:
     """Keep only known permission names set to a boolean."""
     cleaned = {}
     for name, value in (permissions or {}).items():
          parsed = to_permission(name)
          if parsed is None or not isinstance(value, bool):
               logger.debug("Dropping unknown permission override %r=%r", name, value)
               continue
          cleaned[parsed.value] = value
     return cleaned
