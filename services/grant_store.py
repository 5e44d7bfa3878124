# services/grant_store.py
"""
Grant Store - persistence for property grants.

Invariants enforced here:
- at most one grant per (property_id, user_id); writes are upserts
- once a property has any grant, it keeps at least one ACTIVE OWNER grant;
  upsert refuses any other write on an ownerless property and deactivate
  refuses to remove the last owner

Reads in this module go straight to the session. They are the privileged path
the authorization engine relies on and must never be routed through the
enforcement boundary.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import PropertyGrant, Role, GrantStatus, utcnow
from services.access_cache import AccessCache
from services.exceptions import Conflict, InvariantViolation, NotFound, storage_errors

logger = logging.getLogger(__name__)

DEACTIVATED_STATUSES = (GrantStatus.INACTIVE, GrantStatus.REVOKED)


class GrantStore:
     """Upsert/get/list/deactivate for property grants."""

     def __init__(self, db: Session, cache: Optional[AccessCache] = None):
          self.db = db
          self.cache = cache

     # ------------------------------------------------------------------
     # Reads
     # ------------------------------------------------------------------

     def find(self, property_id: int, user_id: int) -> Optional[PropertyGrant]:
          """Return the grant for the pair, or None."""
          with storage_errors("grant lookup"):
               return (
                    self.db.query(PropertyGrant)
                    .filter(PropertyGrant.property_id == property_id, PropertyGrant.user_id == user_id)
                    .first()
               )

     def get(self, property_id: int, user_id: int) -> PropertyGrant:
          """
          Get the grant for the pair.

          Raises:
               NotFound: If the user has never been granted anything on the property.
          """
          grant = self.find(property_id, user_id)
          if grant is None:
               raise NotFound(
                    f"No grant for user {user_id} on property {property_id}",
                    {"property_id": property_id, "user_id": user_id},
               )
          return grant

     def list_for_user(self, user_id: int) -> List[PropertyGrant]:
          """All ACTIVE grants held by a user."""
          with storage_errors("grant listing"):
               return (
                    self.db.query(PropertyGrant)
                    .filter(PropertyGrant.user_id == user_id, PropertyGrant.status == GrantStatus.ACTIVE)
                    .order_by(PropertyGrant.property_id)
                    .all()
               )

     def list_for_property(self, property_id: int, status: Optional[GrantStatus] = None) -> List[PropertyGrant]:
          """All grants on a property, optionally narrowed to one status."""
          with storage_errors("grant listing"):
               query = self.db.query(PropertyGrant).filter(PropertyGrant.property_id == property_id)
               if status is not None:
                    query = query.filter(PropertyGrant.status == status)
               return query.order_by(PropertyGrant.created_at, PropertyGrant.id).all()

     def active_owner_count(self, property_id: int, exclude_user_id: Optional[int] = None, lock: bool = False) -> int:
          with storage_errors("owner count"):
               query = self.db.query(PropertyGrant).filter(
                    PropertyGrant.property_id == property_id,
                    PropertyGrant.role == Role.OWNER,
                    PropertyGrant.status == GrantStatus.ACTIVE,
               )
               if exclude_user_id is not None:
                    query = query.filter(PropertyGrant.user_id != exclude_user_id)
               if lock:
                    query = query.with_for_update()
               return len(query.all())

     def has_active_owner(self, property_id: int) -> bool:
          return self.active_owner_count(property_id) > 0

     # ------------------------------------------------------------------
     # Writes
     # ------------------------------------------------------------------

     def upsert(
          self,
          property_id: int,
          user_id: int,
          role: Role,
          status: GrantStatus,
          invited_by: Optional[int] = None,
          permissions: Optional[Dict[str, bool]] = None,
          accepted_at: Optional[datetime] = None,
     ) -> PropertyGrant:
          """
          Create or overwrite the single grant for (property_id, user_id).

          On conflict the role and status are replaced and updated_at refreshed.
          invited_by and permissions are only replaced when given.

          Raises:
               InvariantViolation: If no other ACTIVE OWNER would remain on the
                    property, e.g. demoting the sole owner or adding a member to a
                    property that has no owner grant yet.
               Conflict: If a concurrent insert for the same pair won the race.
          """
          now = utcnow()
          with storage_errors("grant upsert"):
               existing = (
                    self.db.query(PropertyGrant)
                    .filter(PropertyGrant.property_id == property_id, PropertyGrant.user_id == user_id)
                    .with_for_update()
                    .first()
               )

               # Whatever this row becomes, some ACTIVE OWNER must remain
               if not (role == Role.OWNER and status == GrantStatus.ACTIVE):
                    self._ensure_other_owner(property_id, user_id, action=f"write {role.value}/{status.value}")

               if existing is not None:
                    existing.role = role
                    existing.status = status
                    if invited_by is not None:
                         existing.invited_by = invited_by
                    if permissions is not None:
                         existing.permissions = dict(permissions)
                    if status == GrantStatus.ACTIVE and existing.accepted_at is None:
                         existing.accepted_at = accepted_at or now
                    existing.updated_at = now
                    self.db.flush()
                    grant = existing
               else:
                    grant = PropertyGrant(
                         property_id=property_id,
                         user_id=user_id,
                         role=role,
                         status=status,
                         permissions=dict(permissions or {}),
                         invited_by=invited_by,
                         invited_at=now,
                         accepted_at=(accepted_at or now) if status == GrantStatus.ACTIVE else None,
                         created_at=now,
                         updated_at=now,
                    )
                    try:
                         with self.db.begin_nested():
                              self.db.add(grant)
                    except IntegrityError as e:
                         logger.warning(
                              "Concurrent grant insert lost the race: property_id=%s user_id=%s",
                              property_id, user_id,
                         )
                         raise Conflict(
                              "Grant was written concurrently; retry the request",
                              {"property_id": property_id, "user_id": user_id},
                         ) from e

          self._track(user_id, property_id)
          logger.info(
               "Grant upserted: property_id=%s user_id=%s role=%s status=%s",
               property_id, user_id, role.value, status.value,
          )
          return grant

     def deactivate(self, property_id: int, user_id: int, status: GrantStatus = GrantStatus.INACTIVE) -> PropertyGrant:
          """
          Move a grant to INACTIVE or REVOKED.

          Raises:
               NotFound: If the pair has no grant.
               InvariantViolation: If the grant is the last ACTIVE OWNER.
          """
          if status not in DEACTIVATED_STATUSES:
               raise ValueError(f"deactivate() expects INACTIVE or REVOKED, got {status}")

          with storage_errors("grant deactivate"):
               grant = (
                    self.db.query(PropertyGrant)
                    .filter(PropertyGrant.property_id == property_id, PropertyGrant.user_id == user_id)
                    .with_for_update()
                    .first()
               )
               if grant is None:
                    raise NotFound(
                         f"No grant for user {user_id} on property {property_id}",
                         {"property_id": property_id, "user_id": user_id},
                    )
               if grant.is_active_owner:
                    self._ensure_other_owner(property_id, user_id, action=f"deactivate ({status.value})")

               grant.status = status
               grant.updated_at = utcnow()
               self.db.flush()

          self._track(user_id, property_id)
          logger.info("Grant deactivated: property_id=%s user_id=%s status=%s", property_id, user_id, status.value)
          return grant

     # ------------------------------------------------------------------
     # Helpers
     # ------------------------------------------------------------------

     def _ensure_other_owner(self, property_id: int, user_id: int, action: str) -> None:
          if self.active_owner_count(property_id, exclude_user_id=user_id, lock=True) == 0:
               logger.error(
                    "Refused to %s: property_id=%s would have no active owner (user_id=%s)",
                    action, property_id, user_id,
               )
               raise InvariantViolation(
                    "Property must keep at least one active owner",
                    {"property_id": property_id, "user_id": user_id},
               )

     def _track(self, user_id: int, property_id: int) -> None:
          if self.cache is not None:
               self.cache.track_write(self.db, user_id, property_id)
