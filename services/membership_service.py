# services/membership_service.py
"""Member administration for a property: list, change role, remove."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models import PropertyGrant, GrantStatus, Role
from services.authorization import AuthorizationEngine
from services.identity import IdentityProvider
from services.permissions import PermissionName, permission_flags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Member:
     user_id: int
     email: Optional[str]
     role: Role
     status: GrantStatus
     permissions: Dict[str, bool]
     flags: Dict[str, bool]
     invited_by: Optional[int]
     accepted_at: Optional[datetime]


class MembershipService:
     """
     Every operation requires manage_users on the property. Writes go through
     GrantStore, so the sole-owner invariant applies to role changes and
     removals alike.
     """

     def __init__(self, db: Session, engine: AuthorizationEngine, identity: Optional[IdentityProvider] = None):
          self.db = db
          self.engine = engine
          self.grants = engine.grants
          self.directory = engine.directory
          self.identity = identity or IdentityProvider(db)

     def list_members(self, property_id: int, actor_id: int, include_inactive: bool = False) -> List[Member]:
          self.directory.get(property_id)
          self.engine.require_permission(actor_id, property_id, PermissionName.MANAGE_USERS, resource="member")
          status = None if include_inactive else GrantStatus.ACTIVE
          return [self._member(g) for g in self.grants.list_for_property(property_id, status=status)]

     def change_role(self, property_id: int, user_id: int, role: Role, actor_id: int) -> PropertyGrant:
          """
          Raises:
               NotFound: If the user has no grant on the property.
               InvariantViolation: If this demotes the last ACTIVE OWNER.
          """
          self.engine.require_permission(actor_id, property_id, PermissionName.MANAGE_USERS, resource="member")
          current = self.grants.get(property_id, user_id)
          grant = self.grants.upsert(property_id, user_id, role=role, status=current.status)
          logger.info(
               "Role changed: property_id=%s user_id=%s role=%s by user_id=%s",
               property_id, user_id, role.value, actor_id,
          )
          return grant

     def remove_member(self, property_id: int, user_id: int, actor_id: int) -> PropertyGrant:
          self.engine.require_permission(actor_id, property_id, PermissionName.MANAGE_USERS, resource="member")
          grant = self.grants.deactivate(property_id, user_id, status=GrantStatus.REVOKED)
          logger.info("Member removed: property_id=%s user_id=%s by user_id=%s", property_id, user_id, actor_id)
          return grant

     def _member(self, grant: PropertyGrant) -> Member:
          return Member(
               user_id=grant.user_id,
               email=self.identity.email_of(grant.user_id),
               role=grant.role,
               status=grant.status,
               permissions=dict(grant.permissions or {}),
               flags=permission_flags(grant.role),
               invited_by=grant.invited_by,
               accepted_at=grant.accepted_at,
          )
