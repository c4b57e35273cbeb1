"""Identity API schemas"""
from identity.api.schemas.invitation_schemas import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CreateInvitationRequest,
    CreateInvitationResponse,
    InvitationResponse,
    OrganizationSummaryResponse,
)

__all__ = [
    "AcceptInvitationRequest",
    "AcceptInvitationResponse",
    "CreateInvitationRequest",
    "CreateInvitationResponse",
    "InvitationResponse",
    "OrganizationSummaryResponse",
]
