# schemas/property.py
"""
Pydantic schemas for the protected property resources (properties, units, tenants).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


class PropertyCreate(BaseModel):
     """Schema for registering a new property. The creator becomes its OWNER."""
     property_name: str = Field(..., min_length=1, max_length=255)
     description: Optional[str] = None
     street: Optional[str] = Field(None, max_length=255)
     city: Optional[str] = Field(None, max_length=100)
     province: Optional[str] = Field(None, max_length=100)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "property_name": "Sunset Condos",
                    "street": "12 Roxas Blvd",
                    "city": "Pasay",
                    "province": "Metro Manila"
               }
          }
     )


class PropertyResponse(BaseModel):
     id: int
     property_name: str
     description: Optional[str] = None
     street: Optional[str] = None
     city: Optional[str] = None
     province: Optional[str] = None
     created_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class UnitCreate(BaseModel):
     """Schema for adding a unit to a property."""
     unit_number: str = Field(..., min_length=1, max_length=50)
     unit_type: Optional[str] = Field(None, max_length=100)
     rent_price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
     floor: Optional[str] = Field(None, max_length=20)
     description: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "unit_number": "Unit 101",
                    "unit_type": "Studio",
                    "rent_price": 15000.00,
                    "floor": "1"
               }
          }
     )


class UnitResponse(BaseModel):
     id: int
     property_id: int
     unit_number: str
     unit_type: Optional[str] = None
     rent_price: Optional[Decimal] = None
     floor: Optional[str] = None
     status: str
     created_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class TenantResponse(BaseModel):
     tenant_id: int
     property_id: int
     first_name: str
     last_name: str
     email: str
     contact_number: Optional[str] = None
     status: str

     model_config = ConfigDict(from_attributes=True)


class UnitListResponse(BaseModel):
     units: List[UnitResponse]
     total: int


class TenantListResponse(BaseModel):
     tenants: List[TenantResponse]
     total: int
