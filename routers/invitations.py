# routers/invitations.py
"""
Invitation API routes.

Issuing and revoking require manage_users on the property. Accepting only
needs an authenticated user holding the token.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from dependencies import get_current_user_id, get_workflow
from models import InvitationStatus
from schemas.access import GrantResponse
from schemas.invitation import (
     InvitationCreate,
     InvitationAccept,
     InvitationResponse,
     InvitationIssuedResponse,
     InvitationListResponse,
)
from services.invitation_workflow import InvitationWorkflow
from utils.email import EmailDeliveryError, send_invitation_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["invitations"])


@router.post(
     "/properties/{property_id}/invitations",
     response_model=InvitationIssuedResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Invite someone to a property"
)
def issue_invitation(
     property_id: int,
     body: InvitationCreate,
     user_id: int = Depends(get_current_user_id),
     workflow: InvitationWorkflow = Depends(get_workflow),
):
     """
     Create a PENDING invitation valid for 7 days.

     - **email**: invitee email; no account is required yet
     - **role**: role granted when the invitation is accepted
     - **permissions**: optional overrides that widen the role

     The token is returned to the issuer. Email delivery is best effort: a
     failed send is reported as **email_sent: false** and the invitation stands.
     """
     invitation = workflow.issue(property_id, body.email, body.role, user_id, permissions=body.permissions)
     property_name = workflow.directory.get(property_id).name

     email_sent = False
     try:
          send_invitation_email(invitation.email, invitation.token, property_name, invitation.role.value, invitation.expires_at)
          email_sent = True
     except EmailDeliveryError as e:
          logger.warning("Invitation id=%s created but email not sent: %s", invitation.id, e)

     response = InvitationIssuedResponse.model_validate(invitation)
     response.email_sent = email_sent
     return response


@router.get(
     "/properties/{property_id}/invitations",
     response_model=InvitationListResponse,
     summary="List invitations on a property"
)
def list_property_invitations(
     property_id: int,
     status_filter: Optional[InvitationStatus] = Query(None, alias="status"),
     user_id: int = Depends(get_current_user_id),
     workflow: InvitationWorkflow = Depends(get_workflow),
):
     invitations = workflow.list_for_property(property_id, user_id, status=status_filter)
     return InvitationListResponse(
          invitations=[InvitationResponse.model_validate(i) for i in invitations],
          total=len(invitations),
     )


@router.get(
     "/invitations/mine",
     response_model=InvitationListResponse,
     summary="Pending invitations addressed to the caller"
)
def list_my_invitations(
     user_id: int = Depends(get_current_user_id),
     workflow: InvitationWorkflow = Depends(get_workflow),
):
     invitations = workflow.pending_for_user(user_id)
     return InvitationListResponse(
          invitations=[InvitationResponse.model_validate(i) for i in invitations],
          total=len(invitations),
     )


@router.post(
     "/invitations/accept",
     response_model=GrantResponse,
     summary="Accept an invitation"
)
def accept_invitation(
     body: InvitationAccept,
     user_id: int = Depends(get_current_user_id),
     workflow: InvitationWorkflow = Depends(get_workflow),
):
     """
     Redeem a token for an ACTIVE grant.

     Returns 404 for an unknown token, 410 when it has expired and 409
     (already_resolved) when it was used or cancelled.
     """
     grant = workflow.accept(body.token, user_id)
     return GrantResponse.model_validate(grant)


@router.post(
     "/invitations/{invitation_id}/revoke",
     response_model=InvitationResponse,
     summary="Revoke a pending invitation"
)
def revoke_invitation(
     invitation_id: int,
     user_id: int = Depends(get_current_user_id),
     workflow: InvitationWorkflow = Depends(get_workflow),
):
     invitation = workflow.revoke(invitation_id, user_id)
     return InvitationResponse.model_validate(invitation)
