# services/__init__.py
from .exceptions import (
     AccessControlError,
     NotFound,
     InvalidTransition,
     AlreadyResolved,
     Expired,
     InvariantViolation,
     Forbidden,
     Conflict,
     PolicyCycleError,
     Unavailable,
)
from .permissions import PermissionName, ROLE_PERMISSIONS, permits
from .access_cache import AccessCache, access_cache
from .grant_store import GrantStore
from .invitation_store import InvitationStore
from .property_directory import PropertyDirectory
from .identity import IdentityProvider
from .authorization import AuthorizationEngine, PropertySummary
from .reconciler import LegacyOwnershipReconciler, ReconcileOutcome
from .invitation_workflow import InvitationWorkflow
from .membership_service import MembershipService
from .boundary import AccessBoundary, PolicyRegistry, ResourcePolicy, default_registry

__all__ = [
     "AccessControlError",
     "NotFound",
     "InvalidTransition",
     "AlreadyResolved",
     "Expired",
     "InvariantViolation",
     "Forbidden",
     "Conflict",
     "PolicyCycleError",
     "Unavailable",
     "PermissionName",
     "ROLE_PERMISSIONS",
     "permits",
     "AccessCache",
     "access_cache",
     "GrantStore",
     "InvitationStore",
     "PropertyDirectory",
     "IdentityProvider",
     "AuthorizationEngine",
     "PropertySummary",
     "LegacyOwnershipReconciler",
     "ReconcileOutcome",
     "InvitationWorkflow",
     "MembershipService",
     "AccessBoundary",
     "PolicyRegistry",
     "ResourcePolicy",
     "default_registry",
]
