"""
Application-scoped dependencies, read from ``app.state``.
"""
from __future__ import annotations

from fastapi import Request

from identity.application.services.invitation_service import InvitationService
from identity.domain.protocols import IIdentityProvider


def get_identity_provider(request: Request) -> IIdentityProvider:
    return request.app.state.identity_provider


def get_invitation_service(request: Request) -> InvitationService:
    return request.app.state.invitation_service
