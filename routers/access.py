# routers/access.py
"""
Property access API routes.

- Caller's accessible properties with role and convenience flags
- Caller's standing on one property
- Member administration (manage_users required)
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status

from dependencies import get_current_user_id, get_engine, get_membership
from schemas.access import (
     PropertyAccessResponse,
     PropertyAccessListResponse,
     AccessCheckResponse,
     MemberResponse,
     MemberRoleUpdate,
     GrantResponse,
)
from services.authorization import AuthorizationEngine
from services.membership_service import MembershipService

router = APIRouter(prefix="/api/access", tags=["access"])


@router.get(
     "/properties",
     response_model=PropertyAccessListResponse,
     summary="List properties the caller can access"
)
def list_accessible_properties(
     user_id: int = Depends(get_current_user_id),
     engine: AuthorizationEngine = Depends(get_engine),
):
     """
     One row per ACTIVE grant, ordered by property name then id.

     Each row carries the caller's role and the **can_manage_users**,
     **can_edit_property**, **can_manage_tenants** and **can_manage_maintenance** flags.
     """
     summaries = engine.accessible_properties(user_id)
     return PropertyAccessListResponse(
          properties=[PropertyAccessResponse.model_validate(s) for s in summaries],
          total=len(summaries),
     )


@router.get(
     "/properties/{property_id}",
     response_model=AccessCheckResponse,
     summary="Caller's role and permissions on a property"
)
def check_property_access(
     property_id: int,
     user_id: int = Depends(get_current_user_id),
     engine: AuthorizationEngine = Depends(get_engine),
):
     engine.directory.get(property_id)
     role, found = engine.role_of(user_id, property_id)
     return AccessCheckResponse(
          property_id=property_id,
          has_access=found,
          role=role,
          permissions=engine.effective_permissions(user_id, property_id),
     )


@router.get(
     "/properties/{property_id}/members",
     response_model=List[MemberResponse],
     summary="List members of a property"
)
def list_members(
     property_id: int,
     include_inactive: bool = Query(False, description="Include INACTIVE/REVOKED grants"),
     user_id: int = Depends(get_current_user_id),
     membership: MembershipService = Depends(get_membership),
):
     members = membership.list_members(property_id, user_id, include_inactive=include_inactive)
     return [MemberResponse.model_validate(m) for m in members]


@router.patch(
     "/properties/{property_id}/members/{member_id}",
     response_model=GrantResponse,
     summary="Change a member's role"
)
def change_member_role(
     property_id: int,
     member_id: int,
     body: MemberRoleUpdate,
     user_id: int = Depends(get_current_user_id),
     membership: MembershipService = Depends(get_membership),
):
     """Demoting the last OWNER is refused with 409 invariant_violation."""
     grant = membership.change_role(property_id, member_id, body.role, actor_id=user_id)
     return GrantResponse.model_validate(grant)


@router.delete(
     "/properties/{property_id}/members/{member_id}",
     status_code=status.HTTP_204_NO_CONTENT,
     summary="Remove a member from a property"
)
def remove_member(
     property_id: int,
     member_id: int,
     user_id: int = Depends(get_current_user_id),
     membership: MembershipService = Depends(get_membership),
):
     membership.remove_member(property_id, member_id, actor_id=user_id)
