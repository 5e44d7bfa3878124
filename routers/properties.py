# routers/properties.py
"""
Protected property resources.

Every read and write here goes through AccessBoundary, so rows on
properties the caller holds no grant for are filtered out (lists) or refused
with 403 (direct access).
"""
from typing import List
from fastapi import APIRouter, Depends, status

from dependencies import get_boundary, get_current_user_id, get_reconciler
from models import Property, PropertyUnit, Tenant
from schemas.property import (
     PropertyCreate,
     PropertyResponse,
     UnitCreate,
     UnitResponse,
     UnitListResponse,
     TenantResponse,
     TenantListResponse,
)
from services.boundary import AccessBoundary
from services.permissions import PermissionName
from services.reconciler import LegacyOwnershipReconciler

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("", response_model=List[PropertyResponse], summary="List properties visible to the caller")
def list_properties(boundary: AccessBoundary = Depends(get_boundary)):
     properties = boundary.query(Property).order_by(Property.property_name, Property.id).all()
     return [PropertyResponse.model_validate(p) for p in properties]


@router.post(
     "",
     response_model=PropertyResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Register a new property"
)
def create_property(
     body: PropertyCreate,
     user_id: int = Depends(get_current_user_id),
     reconciler: LegacyOwnershipReconciler = Depends(get_reconciler),
):
     """The creator is granted ACTIVE OWNER on the new property."""
     db = reconciler.db
     prop = Property(**body.model_dump())
     db.add(prop)
     db.flush()
     reconciler.on_property_created(prop.id, user_id)
     return PropertyResponse.model_validate(prop)


@router.get("/{property_id}", response_model=PropertyResponse, summary="Get a property")
def get_property(property_id: int, boundary: AccessBoundary = Depends(get_boundary)):
     return PropertyResponse.model_validate(boundary.get(Property, property_id))


@router.get("/{property_id}/units", response_model=UnitListResponse, summary="List units of a property")
def list_units(property_id: int, boundary: AccessBoundary = Depends(get_boundary)):
     boundary.require(property_id, PermissionName.VIEW_PROPERTY, resource="property_units")
     units = (
          boundary.query(PropertyUnit)
          .filter(PropertyUnit.property_id == property_id)
          .order_by(PropertyUnit.unit_number)
          .all()
     )
     return UnitListResponse(units=[UnitResponse.model_validate(u) for u in units], total=len(units))


@router.post(
     "/{property_id}/units",
     response_model=UnitResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Add a unit to a property"
)
def create_unit(property_id: int, body: UnitCreate, boundary: AccessBoundary = Depends(get_boundary)):
     """Requires **edit_property** on the property."""
     unit = boundary.add(PropertyUnit(property_id=property_id, **body.model_dump()))
     boundary.db.refresh(unit)
     return UnitResponse.model_validate(unit)


@router.get("/{property_id}/tenants", response_model=TenantListResponse, summary="List tenants of a property")
def list_tenants(property_id: int, boundary: AccessBoundary = Depends(get_boundary)):
     """Requires **manage_tenants** on the property."""
     boundary.require(property_id, PermissionName.MANAGE_TENANTS, resource="tenants")
     tenants = (
          boundary.query(Tenant)
          .filter(Tenant.property_id == property_id)
          .order_by(Tenant.last_name, Tenant.first_name)
          .all()
     )
     return TenantListResponse(tenants=[TenantResponse.model_validate(t) for t in tenants], total=len(tenants))
