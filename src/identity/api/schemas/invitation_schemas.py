"""
Invitation API Schemas
Wire names are camelCase to match the browser clients.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from identity.domain.value_objects.role import Role


class AcceptInvitationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    invitation_code: str = Field(..., alias="invitationCode", min_length=1, max_length=128)


class OrganizationSummaryResponse(BaseModel):
    id: str
    name: str


class AcceptInvitationResponse(BaseModel):
    success: bool = True
    organization: OrganizationSummaryResponse


class CreateInvitationRequest(BaseModel):
    """Create invitation request schema"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    email: EmailStr = Field(..., description="Invitee email address")
    organization_id: str = Field(..., alias="organizationId", min_length=1)
    role: Role = Field(default=Role.USER, description="Role granted on acceptance")
    expires_in_days: Optional[int] = Field(default=None, alias="expiresInDays", ge=1, le=90)


class InvitationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    invitation_code: str = Field(..., alias="invitationCode")
    organization_id: str = Field(..., alias="organizationId")
    email: str
    role: Role
    status: str
    expires_at: datetime = Field(..., alias="expiresAt")


class CreateInvitationResponse(BaseModel):
    success: bool = True
    invitation: InvitationResponse
