# services/authorization.py
"""
Authorization Engine - read-path decisions for property access.

Answers "does user U have access to property P", "with which role", "may U do
X on P" and "which properties can U see". Grants are read through GrantStore
on the raw session: this is the privileged path, exempt from the enforcement
boundary's filtering, and every evaluation runs inside evaluating_access() so
the boundary can refuse to be re-entered from here.

Legacy fallback: properties.landlord_id is consulted when the grant store is
unavailable, and when the property has no ACTIVE OWNER grant yet (unreconciled
legacy data). As soon as an ACTIVE OWNER grant exists the grant table wins.
"""
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from sqlalchemy.orm import Session

from models import Role
from services.access_cache import AccessCache, GrantSnapshot, is_missing
from services.exceptions import AccessControlError, Forbidden, Unavailable
from services.grant_store import GrantStore
from services.permissions import (
     PermissionName,
     permits,
     permission_flags,
     to_permission,
     widened_by_overrides,
)
from services.property_directory import PropertyDirectory

logger = logging.getLogger(__name__)

SOURCE_GRANT = "grant"
SOURCE_LEGACY = "legacy"

_evaluating_access: ContextVar[bool] = ContextVar("evaluating_access", default=False)


@contextmanager
def evaluating_access():
     """Mark the current context as running an access decision."""
     token = _evaluating_access.set(True)
     try:
          yield
     finally:
          _evaluating_access.reset(token)


def is_evaluating_access() -> bool:
     return _evaluating_access.get()


@dataclass(frozen=True)
class PropertySummary:
     """One accessible property with the caller's role and convenience flags."""
     property_id: int
     property_name: str
     role: Role
     permissions: Dict[str, bool] = field(default_factory=dict)
     can_manage_users: bool = False
     can_edit_property: bool = False
     can_manage_tenants: bool = False
     can_manage_maintenance: bool = False
     source: str = SOURCE_GRANT


def _summary(property_id: int, name: str, snapshot: GrantSnapshot, source: str) -> PropertySummary:
     return PropertySummary(
          property_id=property_id,
          property_name=name,
          role=snapshot.role,
          permissions=dict(snapshot.permissions),
          source=source,
          **permission_flags(snapshot.role),
     )


class AuthorizationEngine:
     """
     Read-only authorization checks for one request.

     Args:
          db: Session used for the privileged grant reads
          cache: Optional AccessCache shared across requests
          reconciler: Optional LegacyOwnershipReconciler; when given, a legacy
               fallback hit triggers reconcile(property_id) and one retry
     """

     def __init__(
          self,
          db: Session,
          grants: Optional[GrantStore] = None,
          directory: Optional[PropertyDirectory] = None,
          cache: Optional[AccessCache] = None,
          reconciler=None,
     ):
          self.db = db
          self.cache = cache
          self.grants = grants or GrantStore(db, cache=cache)
          self.directory = directory or PropertyDirectory(db)
          self.reconciler = reconciler

     # ------------------------------------------------------------------
     # Public checks
     # ------------------------------------------------------------------

     def has_access(self, user_id: int, property_id: int) -> bool:
          """True iff the user holds an ACTIVE grant (or the legacy fallback applies)."""
          return self._resolve(user_id, property_id) is not None

     def role_of(self, user_id: int, property_id: int) -> Tuple[Optional[Role], bool]:
          """Return (role, found)."""
          snapshot = self._resolve(user_id, property_id)
          if snapshot is None:
               return None, False
          return snapshot.role, True

     def has_role(self, user_id: int, property_id: int, roles: Iterable[Role]) -> bool:
          role, found = self.role_of(user_id, property_id)
          return found and role in set(roles)

     def has_permission(self, user_id: int, property_id: int, permission: Union[PermissionName, str]) -> bool:
          """
          Role baseline from the permission matrix, OR'd with per-grant
          overrides set to true. Unknown permission names are denied.
          """
          parsed = to_permission(permission)
          if parsed is None:
               logger.debug("Unknown permission name denied: %r", permission)
               return False
          snapshot = self._resolve(user_id, property_id)
          if snapshot is None:
               return False
          return permits(snapshot.role, parsed) or widened_by_overrides(snapshot.permissions, parsed)

     def effective_permissions(self, user_id: int, property_id: int) -> Dict[str, bool]:
          """Every permission name mapped to the caller's decision on the property."""
          snapshot = self._resolve(user_id, property_id)
          if snapshot is None:
               return {p.value: False for p in PermissionName}
          return {
               p.value: permits(snapshot.role, p) or widened_by_overrides(snapshot.permissions, p)
               for p in PermissionName
          }

     def require_permission(
          self,
          user_id: int,
          property_id: int,
          permission: Union[PermissionName, str],
          resource: str = "property",
     ) -> None:
          """
          Raise Forbidden unless the user holds the permission.

          Every denial is written to the audit log with actor, property,
          resource and permission.
          """
          if self.has_permission(user_id, property_id, permission):
               return
          name = permission.value if isinstance(permission, PermissionName) else str(permission)
          logger.warning(
               "Access denied: user_id=%s property_id=%s resource=%s permission=%s",
               user_id, property_id, resource, name,
          )
          raise Forbidden(
               f"You do not have '{name}' permission on this property",
               {"property_id": property_id, "resource": resource, "permission": name},
          )

     def accessible_properties(self, user_id: int) -> List[PropertySummary]:
          """
          One row per ACTIVE grant, plus legacy-owned properties that have no
          ACTIVE OWNER grant yet. Ordered by display name, then property id.
          """
          with evaluating_access():
               try:
                    grants = self.grants.list_for_user(user_id)
               except Unavailable:
                    logger.warning("Grant store unavailable; listing legacy-owned properties only for user_id=%s", user_id)
                    rows = [
                         _summary(r.id, r.name, GrantSnapshot(role=Role.OWNER), SOURCE_LEGACY)
                         for r in self.directory.legacy_owned_by(user_id)
                    ]
                    return sorted(rows, key=_display_order)

               names = self.directory.names(g.property_id for g in grants)
               rows = [
                    _summary(
                         g.property_id,
                         names.get(g.property_id, ""),
                         GrantSnapshot(role=g.role, permissions=dict(g.permissions or {})),
                         SOURCE_GRANT,
                    )
                    for g in grants
               ]
               granted_ids = {g.property_id for g in grants}
               for record in self.directory.legacy_owned_by(user_id):
                    if record.id in granted_ids or self.grants.has_active_owner(record.id):
                         continue
                    rows.append(_summary(record.id, record.name, GrantSnapshot(role=Role.OWNER), SOURCE_LEGACY))

          return sorted(rows, key=_display_order)

     def accessible_property_ids(self, user_id: int, permission: Union[PermissionName, str, None] = None) -> Set[int]:
          """Ids of properties the user can see, optionally narrowed to one permission."""
          summaries = self.accessible_properties(user_id)
          if permission is None:
               return {s.property_id for s in summaries}
          parsed = to_permission(permission)
          if parsed is None:
               return set()
          return {
               s.property_id for s in summaries
               if permits(s.role, parsed) or widened_by_overrides(s.permissions, parsed)
          }

     # ------------------------------------------------------------------
     # Resolution
     # ------------------------------------------------------------------

     def _resolve(self, user_id: int, property_id: int) -> Optional[GrantSnapshot]:
          with evaluating_access():
               try:
                    snapshot = self._snapshot(user_id, property_id)
               except Unavailable:
                    return self._outage_fallback(user_id, property_id)
               if snapshot is not None:
                    return snapshot
               return self._legacy_fallback(user_id, property_id)

     def _snapshot(self, user_id: int, property_id: int) -> Optional[GrantSnapshot]:
          read_token = None
          if self.cache is not None:
               cached = self.cache.get(user_id, property_id)
               if not is_missing(cached):
                    return cached
               read_token = self.cache.begin_read()

          grant = self.grants.find(property_id, user_id)
          snapshot = None
          if grant is not None and grant.is_active:
               snapshot = GrantSnapshot(role=grant.role, permissions=dict(grant.permissions or {}))

          if self.cache is not None:
               self.cache.put(user_id, property_id, snapshot, read_token=read_token)
          return snapshot

     def _outage_fallback(self, user_id: int, property_id: int) -> GrantSnapshot:
          legacy_owner = self.directory.legacy_owner_of(property_id)
          if legacy_owner is not None and legacy_owner == user_id:
               logger.warning(
                    "Grant store unavailable; legacy owner fallback used: user_id=%s property_id=%s",
                    user_id, property_id,
               )
               return GrantSnapshot(role=Role.OWNER)
          raise Unavailable(
               "Access could not be evaluated; grant store unavailable",
               {"property_id": property_id},
          )

     def _legacy_fallback(self, user_id: int, property_id: int) -> Optional[GrantSnapshot]:
          legacy_owner = self.directory.legacy_owner_of(property_id)
          if legacy_owner is None or legacy_owner != user_id:
               return None
          if self.grants.has_active_owner(property_id):
               # Grant table wins over a stale landlord_id
               return None

          logger.info("Unreconciled legacy owner: user_id=%s property_id=%s", user_id, property_id)
          if self.reconciler is not None:
               try:
                    self.reconciler.reconcile(property_id)
               except AccessControlError as e:
                    logger.warning("Lazy reconcile failed for property_id=%s: %s", property_id, e.message)
               else:
                    if self.cache is not None:
                         self.cache.invalidate(user_id, property_id)
                    retried = self._snapshot(user_id, property_id)
                    if retried is not None:
                         return retried
          return GrantSnapshot(role=Role.OWNER)


def _display_order(summary: PropertySummary):
     return (summary.property_name.casefold(), summary.property_id)


__all__ = [
     "AuthorizationEngine",
     "PropertySummary",
     "evaluating_access",
     "is_evaluating_access",
]
