# schemas/__init__.py
from .access import (
     PropertyAccessResponse,
     PropertyAccessListResponse,
     AccessCheckResponse,
     MemberResponse,
     MemberRoleUpdate,
     GrantResponse,
)
from .invitation import (
     InvitationCreate,
     InvitationAccept,
     InvitationResponse,
     InvitationIssuedResponse,
     InvitationListResponse,
)
from .property import (
     PropertyCreate,
     PropertyResponse,
     UnitCreate,
     UnitResponse,
     UnitListResponse,
     TenantResponse,
     TenantListResponse,
)

__all__ = [
     "PropertyAccessResponse",
     "PropertyAccessListResponse",
     "AccessCheckResponse",
     "MemberResponse",
     "MemberRoleUpdate",
     "GrantResponse",
     "InvitationCreate",
     "InvitationAccept",
     "InvitationResponse",
     "InvitationIssuedResponse",
     "InvitationListResponse",
     "PropertyCreate",
     "PropertyResponse",
     "UnitCreate",
     "UnitResponse",
     "UnitListResponse",
     "TenantResponse",
     "TenantListResponse",
]
