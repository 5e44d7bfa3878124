# services/boundary.py
"""
Enforcement Boundary - the authorization check in front of protected tables.

Application code reads and writes property-scoped rows (units, tenants,
grants, ...) through an AccessBoundary. The boundary asks the authorization
engine, and the engine reads grants through GrantStore on the raw session,
never through a boundary. Two guards keep it that way:

- PolicyRegistry.register rejects a policy whose rule would read, through the
  boundary, a resource whose own rule leads back to it.
- AccessBoundary refuses to run while an access decision is being evaluated
  in the same context (is_evaluating_access()).
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from sqlalchemy import false
from sqlalchemy.orm import Query, Session

from models import Property, PropertyUnit, Tenant, PropertyGrant, PropertyInvitation
from services.authorization import AuthorizationEngine, is_evaluating_access
from services.exceptions import NotFound, PolicyCycleError
from services.permissions import PermissionName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourcePolicy:
     """
     How one model is gated.

     Args:
          model: The mapped class
          property_attr: Attribute holding the owning property id
          read_permission: Permission needed to read a row
          write_permission: Permission needed to add or change a row
          boundary_reads: Resource names this rule reads through the boundary
               while deciding access. Reads done via the privileged grant path
               are not listed here.
     """
     model: Type
     property_attr: str
     read_permission: PermissionName = PermissionName.VIEW_PROPERTY
     write_permission: PermissionName = PermissionName.EDIT_PROPERTY
     boundary_reads: Tuple[str, ...] = field(default_factory=tuple)

     @property
     def name(self) -> str:
          return self.model.__tablename__


class PolicyRegistry:

     def __init__(self):
          self._policies: Dict[str, ResourcePolicy] = {}

     def register(self, policy: ResourcePolicy) -> ResourcePolicy:
          """
          Add a policy after checking it cannot close a loop.

          Raises:
               PolicyCycleError: If deciding access to the resource would
                    require reading (through the boundary) a resource whose
                    access decision reads it back.
          """
          candidate = dict(self._policies)
          candidate[policy.name] = policy
          cycle = _find_cycle(candidate, policy.name)
          if cycle:
               logger.error("Rejected policy for %s: cycle %s", policy.name, " -> ".join(cycle))
               raise PolicyCycleError(
                    f"Access rule for '{policy.name}' reads back into itself: {' -> '.join(cycle)}",
                    {"resource": policy.name, "cycle": cycle},
               )
          self._policies[policy.name] = policy
          return policy

     def policy_for(self, model: Type) -> ResourcePolicy:
          policy = self._policies.get(getattr(model, "__tablename__", None))
          if policy is None:
               raise KeyError(f"No access policy registered for {model.__name__}")
          return policy

     def __contains__(self, model: Type) -> bool:
          return getattr(model, "__tablename__", None) in self._policies


def _find_cycle(policies: Dict[str, ResourcePolicy], start: str) -> Optional[List[str]]:
     """Depth-first walk of boundary_reads edges; returns the loop path if one reaches start."""
     stack = [(start, [start])]
     seen = set()
     while stack:
          node, path = stack.pop()
          policy = policies.get(node)
          if policy is None:
               continue
          for target in policy.boundary_reads:
               if target == start:
                    return path + [target]
               if target not in seen:
                    seen.add(target)
                    stack.append((target, path + [target]))
     return None


def build_default_registry() -> PolicyRegistry:
     registry = PolicyRegistry()
     registry.register(ResourcePolicy(Property, "id", write_permission=PermissionName.EDIT_PROPERTY))
     registry.register(ResourcePolicy(PropertyUnit, "property_id", write_permission=PermissionName.EDIT_PROPERTY))
     registry.register(ResourcePolicy(Tenant, "property_id", read_permission=PermissionName.MANAGE_TENANTS, write_permission=PermissionName.MANAGE_TENANTS))
     registry.register(ResourcePolicy(PropertyGrant, "property_id", read_permission=PermissionName.MANAGE_USERS, write_permission=PermissionName.MANAGE_USERS))
     registry.register(ResourcePolicy(PropertyInvitation, "property_id", read_permission=PermissionName.MANAGE_USERS, write_permission=PermissionName.MANAGE_USERS))
     return registry


default_registry = build_default_registry()


class AccessBoundary:
     """
     Request-scoped gate for one authenticated user.

     Usage:
          boundary = AccessBoundary(db, user_id, engine)
          units = boundary.query(PropertyUnit).all()
          unit = boundary.get(PropertyUnit, 12)
     """

     def __init__(self, db: Session, user_id: int, engine: AuthorizationEngine, registry: PolicyRegistry = default_registry):
          self.db = db
          self.user_id = user_id
          self.engine = engine
          self.registry = registry

     def query(self, model: Type, permission: Optional[PermissionName] = None) -> Query:
          """Query of model narrowed to rows on properties the user may read."""
          self._guard(model)
          policy = self.registry.policy_for(model)
          allowed = self.engine.accessible_property_ids(self.user_id, permission or policy.read_permission)
          column = getattr(model, policy.property_attr)
          query = self.db.query(model)
          if not allowed:
               return query.filter(false())
          return query.filter(column.in_(sorted(allowed)))

     def get(self, model: Type, object_id):
          """
          Raises:
               NotFound: No such row.
               Forbidden: The row exists on a property the user may not read.
          """
          self._guard(model)
          policy = self.registry.policy_for(model)
          obj = self.db.get(model, object_id)
          if obj is None:
               raise NotFound(f"{model.__name__} {object_id} not found", {"resource": policy.name, "id": object_id})
          self.engine.require_permission(self.user_id, getattr(obj, policy.property_attr), policy.read_permission, resource=policy.name)
          return obj

     def add(self, obj):
          """Insert a row after checking the write permission on its property."""
          self._guard(type(obj))
          policy = self.registry.policy_for(type(obj))
          self.engine.require_permission(self.user_id, getattr(obj, policy.property_attr), policy.write_permission, resource=policy.name)
          self.db.add(obj)
          self.db.flush()
          return obj

     def require(self, property_id: int, permission: PermissionName, resource: str = "property") -> None:
          self._guard(None)
          self.engine.require_permission(self.user_id, property_id, permission, resource=resource)

     def _guard(self, model: Optional[Type]) -> None:
          if is_evaluating_access():
               name = getattr(model, "__tablename__", "property")
               logger.error("Boundary re-entered during access evaluation: resource=%s user_id=%s", name, self.user_id)
               raise PolicyCycleError(
                    "Access evaluation must read grants through the privileged path, not the boundary",
                    {"resource": name},
               )
