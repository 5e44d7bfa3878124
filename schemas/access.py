# schemas/access.py
"""
Pydantic schemas for the property access API.
"""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict

from models import Role, GrantStatus


class PropertyAccessResponse(BaseModel):
     """One accessible property with the caller's role and convenience flags."""
     property_id: int
     property_name: str
     role: Role
     permissions: Dict[str, bool] = Field(default_factory=dict)
     can_manage_users: bool = False
     can_edit_property: bool = False
     can_manage_tenants: bool = False
     can_manage_maintenance: bool = False
     source: str = "grant"

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "property_id": 1,
                    "property_name": "Sunset Condos",
                    "role": "LEASING_AGENT",
                    "permissions": {},
                    "can_manage_users": False,
                    "can_edit_property": False,
                    "can_manage_tenants": True,
                    "can_manage_maintenance": False,
                    "source": "grant"
               }
          }
     )


class PropertyAccessListResponse(BaseModel):
     properties: List[PropertyAccessResponse]
     total: int


class AccessCheckResponse(BaseModel):
     """The caller's standing on a single property."""
     property_id: int
     has_access: bool
     role: Optional[Role] = None
     permissions: Dict[str, bool] = Field(default_factory=dict)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "property_id": 1,
                    "has_access": True,
                    "role": "OWNER",
                    "permissions": {
                         "manage_users": True,
                         "edit_property": True,
                         "manage_tenants": True,
                         "manage_maintenance": True,
                         "view_property": True,
                         "create_property": True
                    }
               }
          }
     )


class MemberResponse(BaseModel):
     user_id: int
     email: Optional[str] = None
     role: Role
     status: GrantStatus
     permissions: Dict[str, bool] = Field(default_factory=dict)
     flags: Dict[str, bool] = Field(default_factory=dict)
     invited_by: Optional[int] = None
     accepted_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class MemberRoleUpdate(BaseModel):
     """Schema for changing a member's role."""
     role: Role = Field(..., description="New role on the property")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "role": "PROPERTY_MANAGER"
               }
          }
     )


class GrantResponse(BaseModel):
     property_id: int
     user_id: int
     role: Role
     status: GrantStatus
     permissions: Dict[str, bool] = Field(default_factory=dict)
     invited_by: Optional[int] = None
     accepted_at: Optional[datetime] = None
     updated_at: datetime

     model_config = ConfigDict(from_attributes=True)
