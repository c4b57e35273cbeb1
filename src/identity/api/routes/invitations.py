"""
Invitation endpoints (privileged).

Mounted under /functions/v1 so the browser client calls them the same
way it calls the hosted functions.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from identity.api.dependencies import CurrentIdentity, get_invitation_service
from identity.api.schemas import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CreateInvitationRequest,
    CreateInvitationResponse,
    InvitationResponse,
    OrganizationSummaryResponse,
)
from identity.application.services.invitation_service import InvitationService
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/functions/v1", tags=["Identity:Invitations"])

Service = Annotated[InvitationService, Depends(get_invitation_service)]


@router.post("/accept-invitation", response_model=AcceptInvitationResponse, status_code=status.HTTP_200_OK)
async def accept_invitation(
    payload: AcceptInvitationRequest,
    identity: CurrentIdentity,
    service: Service,
) -> AcceptInvitationResponse:
    """
    Redeem an invitation code for the calling identity.

    Raises:
        404: invitation_invalid
        400: invitation_expired
        409: invitation_already_used
        403: invitation_email_mismatch
    """
    organization = await service.accept(payload.invitation_code, identity)
    return AcceptInvitationResponse(
        organization=OrganizationSummaryResponse(id=organization.id, name=organization.name),
    )


@router.post("/create-invitation", response_model=CreateInvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    payload: CreateInvitationRequest,
    identity: CurrentIdentity,
    service: Service,
) -> CreateInvitationResponse:
    invitation = await service.create(
        identity,
        organization_id=payload.organization_id,
        email=payload.email,
        role=payload.role,
        expires_in_days=payload.expires_in_days,
    )
    return CreateInvitationResponse(
        invitation=InvitationResponse(
            id=invitation.id,
            invitation_code=invitation.code,
            organization_id=invitation.organization_id,
            email=invitation.invited_email,
            role=invitation.role,
            status=invitation.status.value,
            expires_at=invitation.expires_at,
        )
    )
