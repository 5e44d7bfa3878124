# models/__init__.py
from .base import Base, utcnow
from .user import User
from .property import Property
from .property_unit import PropertyUnit
from .tenant import Tenant
from .property_grant import PropertyGrant, Role, GrantStatus
from .property_invitation import PropertyInvitation, InvitationStatus

__all__ = [
     "Base",
     "utcnow",
     "User",
     "Property",
     "PropertyUnit",
     "Tenant",
     "PropertyGrant",
     "Role",
     "GrantStatus",
     "PropertyInvitation",
     "InvitationStatus",
]
