# services/permissions.py
"""
Permission matrix: static mapping from property role to named permissions.

Pure Python logic - no FastAPI imports, no database access.
"""
import enum
from typing import Dict, FrozenSet, Union

from models.property_grant import Role


class PermissionName(str, enum.Enum):
     """Closed set of permissions a role can hold on a property."""
     MANAGE_USERS = "manage_users"
     EDIT_PROPERTY = "edit_property"
     MANAGE_TENANTS = "manage_tenants"
     MANAGE_MAINTENANCE = "manage_maintenance"
     VIEW_PROPERTY = "view_property"
     CREATE_PROPERTY = "create_property"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[PermissionName]] = {
     Role.OWNER: frozenset(PermissionName),
     Role.PROPERTY_MANAGER: frozenset({
          PermissionName.EDIT_PROPERTY,
          PermissionName.MANAGE_TENANTS,
          PermissionName.MANAGE_MAINTENANCE,
          PermissionName.VIEW_PROPERTY,
          PermissionName.CREATE_PROPERTY,
     }),
     Role.LEASING_AGENT: frozenset({
          PermissionName.MANAGE_TENANTS,
          PermissionName.VIEW_PROPERTY,
     }),
     Role.MAINTENANCE_COORDINATOR: frozenset({
          PermissionName.MANAGE_MAINTENANCE,
          PermissionName.VIEW_PROPERTY,
     }),
     Role.VIEWER: frozenset({
          PermissionName.VIEW_PROPERTY,
     }),
}

# Convenience flags reported with every accessible property
FLAG_PERMISSIONS = {
     "can_manage_users": PermissionName.MANAGE_USERS,
     "can_edit_property": PermissionName.EDIT_PROPERTY,
     "can_manage_tenants": PermissionName.MANAGE_TENANTS,
     "can_manage_maintenance": PermissionName.MANAGE_MAINTENANCE,
}

# Higher = more privileged
ROLE_RANK = {
     Role.OWNER: 5,
     Role.PROPERTY_MANAGER: 4,
     Role.LEASING_AGENT: 3,
     Role.MAINTENANCE_COORDINATOR: 2,
     Role.VIEWER: 1,
}


def to_permission(permission: Union[PermissionName, str]) -> Union[PermissionName, None]:
     """Parse a permission name; returns None for anything outside the closed set."""
     if isinstance(permission, PermissionName):
          return permission
     try:
          return PermissionName(str(permission).strip().lower())
     except ValueError:
          return None


def permits(role: Role, permission: Union[PermissionName, str]) -> bool:
     """
     Check whether a role holds a permission.

     Fail-closed: unknown permission names and unknown roles return False.
     """
     parsed = to_permission(permission)
     if parsed is None:
          return False
     return parsed in ROLE_PERMISSIONS.get(role, frozenset())


def permission_flags(role: Role) -> Dict[str, bool]:
     return {flag: permits(role, permission) for flag, permission in FLAG_PERMISSIONS.items()}


def role_rank(role: Role) -> int:
     return ROLE_RANK.get(role, 0)


def role_at_least(user_role: Role, required_role: Role) -> bool:
     """
     Check if user_role meets or exceeds required_role in rank.

     Example:
          role_at_least(Role.OWNER, Role.VIEWER) -> True
          role_at_least(Role.VIEWER, Role.LEASING_AGENT) -> False
     """
     return role_rank(user_role) >= role_rank(required_role)


def widened_by_overrides(overrides, permission: Union[PermissionName, str]) -> bool:
     """
     True when a per-grant override explicitly grants the permission.

     Overrides only widen the role baseline, so False values are ignored here.
     """
     parsed = to_permission(permission)
     if parsed is None or not overrides:
          return False
     return overrides.get(parsed.value) is True
