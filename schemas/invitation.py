# schemas/invitation.py
"""
Pydantic schemas for Invitation API request/response validation.
"""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict

from models import Role, InvitationStatus


class InvitationCreate(BaseModel):
     """Schema for inviting someone to a property."""
     email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Invitee email")
     role: Role = Field(default=Role.VIEWER, description="Role granted on acceptance")
     permissions: Dict[str, bool] = Field(default_factory=dict, description="Per-grant overrides; only true values widen the role")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "email": "agent@example.com",
                    "role": "LEASING_AGENT",
                    "permissions": {}
               }
          }
     )


class InvitationAccept(BaseModel):
     token: str = Field(..., min_length=16, max_length=64)


class InvitationResponse(BaseModel):
     """Schema for invitation response. The token is only returned to the issuer."""
     id: int
     property_id: int
     email: str
     role: Role
     status: InvitationStatus
     permissions: Dict[str, bool] = Field(default_factory=dict)
     invited_by: int
     expires_at: datetime
     accepted_at: Optional[datetime] = None
     accepted_by: Optional[int] = None
     created_at: datetime

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 1,
                    "property_id": 1,
                    "email": "agent@example.com",
                    "role": "LEASING_AGENT",
                    "status": "PENDING",
                    "permissions": {},
                    "invited_by": 1,
                    "expires_at": "2026-02-08T10:30:00",
                    "accepted_at": None,
                    "accepted_by": None,
                    "created_at": "2026-02-01T10:30:00"
               }
          }
     )


class InvitationIssuedResponse(InvitationResponse):
     token: str
     email_sent: bool = False


class InvitationListResponse(BaseModel):
     invitations: List[InvitationResponse]
     total: int
