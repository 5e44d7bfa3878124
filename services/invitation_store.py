# services/invitation_store.py
"""
Invitation Store - persistence for property invitations.

Status changes are conditional updates ("... WHERE status = PENDING"), so when
several requests race on one invitation exactly one of them sees a row count
of 1.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from config import INVITATION_TTL_DAYS
from models import PropertyInvitation, InvitationStatus, Role, utcnow
from services.exceptions import NotFound, storage_errors

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
     """Random, URL-safe, unguessable acceptance token (43 chars)."""
     return secrets.token_urlsafe(TOKEN_BYTES)


def normalize_email(email: str) -> str:
     return email.strip().lower()


class InvitationStore:

     def __init__(self, db: Session):
          self.db = db

     def create(
          self,
          property_id: int,
          email: str,
          role: Role,
          invited_by: int,
          permissions: Optional[Dict[str, bool]] = None,
          now: Optional[datetime] = None,
          ttl: timedelta = timedelta(days=INVITATION_TTL_DAYS),
     ) -> PropertyInvitation:
          now = now or utcnow()
          invitation = PropertyInvitation(
               property_id=property_id,
               email=normalize_email(email),
               role=role,
               permissions=dict(permissions or {}),
               invited_by=invited_by,
               token=generate_token(),
               expires_at=now + ttl,
               status=InvitationStatus.PENDING,
               created_at=now,
               updated_at=now,
          )
          with storage_errors("invitation insert"):
               self.db.add(invitation)
               self.db.flush()
          return invitation

     def find_by_token(self, token: str) -> Optional[PropertyInvitation]:
          with storage_errors("invitation lookup"):
               return self.db.query(PropertyInvitation).filter(PropertyInvitation.token == token).first()

     def get(self, invitation_id: int) -> PropertyInvitation:
          with storage_errors("invitation lookup"):
               invitation = self.db.query(PropertyInvitation).filter(PropertyInvitation.id == invitation_id).first()
          if invitation is None:
               raise NotFound(f"Invitation {invitation_id} not found", {"invitation_id": invitation_id})
          return invitation

     def list_for_property(self, property_id: int, status: Optional[InvitationStatus] = None) -> List[PropertyInvitation]:
          with storage_errors("invitation listing"):
               query = self.db.query(PropertyInvitation).filter(PropertyInvitation.property_id == property_id)
               if status is not None:
                    query = query.filter(PropertyInvitation.status == status)
               return query.order_by(PropertyInvitation.created_at.desc(), PropertyInvitation.id.desc()).all()

     def list_pending_for_email(self, email: str, now: Optional[datetime] = None) -> List[PropertyInvitation]:
          """Unexpired PENDING invitations addressed to an email."""
          now = now or utcnow()
          with storage_errors("invitation listing"):
               return (
                    self.db.query(PropertyInvitation)
                    .filter(
                         PropertyInvitation.email == normalize_email(email),
                         PropertyInvitation.status == InvitationStatus.PENDING,
                         PropertyInvitation.expires_at >= now,
                    )
                    .order_by(PropertyInvitation.created_at.desc(), PropertyInvitation.id.desc())
                    .all()
               )

     def find_pending(self, property_id: int, email: str) -> List[PropertyInvitation]:
          with storage_errors("invitation lookup"):
               return (
                    self.db.query(PropertyInvitation)
                    .filter(
                         PropertyInvitation.property_id == property_id,
                         PropertyInvitation.email == normalize_email(email),
                         PropertyInvitation.status == InvitationStatus.PENDING,
                    )
                    .all()
               )

     def transition(
          self,
          invitation_id: int,
          to_status: InvitationStatus,
          from_status: InvitationStatus = InvitationStatus.PENDING,
          **fields,
     ) -> bool:
          """
          Atomically move an invitation from one status to another.

          Returns:
               True if this call performed the transition, False if the row
               was no longer in from_status (another caller won).
          """
          values = {"status": to_status, "updated_at": utcnow(), **fields}
          with storage_errors("invitation transition"):
               self.db.flush()
               updated = (
                    self.db.query(PropertyInvitation)
                    .filter(PropertyInvitation.id == invitation_id, PropertyInvitation.status == from_status)
                    .update(values, synchronize_session=False)
               )
          if updated:
               self._refresh(invitation_id)
          return updated == 1

     def expire_overdue(self, now: Optional[datetime] = None) -> int:
          """Mark every overdue PENDING invitation INACTIVE. Returns the row count."""
          now = now or utcnow()
          with storage_errors("invitation sweep"):
               self.db.flush()
               count = (
                    self.db.query(PropertyInvitation)
                    .filter(PropertyInvitation.status == InvitationStatus.PENDING, PropertyInvitation.expires_at < now)
                    .update({"status": InvitationStatus.INACTIVE, "updated_at": now}, synchronize_session=False)
               )
          self.db.expire_all()
          return count

     def _refresh(self, invitation_id: int) -> None:
          invitation = self.db.get(PropertyInvitation, invitation_id)
          if invitation is not None:
               self.db.refresh(invitation)
