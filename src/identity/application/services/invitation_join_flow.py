"""
Invitation Join Flow
Client-side validation and redemption of organization invitation codes.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from identity.application.dto.auth_dto import InvitationDetails
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.organization import OrganizationSummary
from identity.domain.exception import (
    InvitationAlreadyUsed,
    InvitationEmailMismatch,
    InvitationExpired,
    InvitationInvalid,
    NotAuthenticated,
)
from identity.domain.protocols import IIdentityDataStore, IInvitationGateway
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvitationJoinFlow:
    """
    Read-only checks run locally; the state change itself always goes
    through the privileged remote operation. No local optimistic update:
    the caller refreshes profile and organization after a success.
    """

    def __init__(
        self,
        store: IIdentityDataStore,
        gateway: IInvitationGateway,
        *,
        clock: Clock = _utcnow,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._clock = clock

    async def check_code(self, code: str, caller_email: Optional[str] = None) -> InvitationDetails:
        """
        Validate a code before redemption.

        Raises InvitationInvalid, InvitationAlreadyUsed, InvitationExpired
        or InvitationEmailMismatch; each condition is reported distinctly.
        """
        invitation = await self._store.invitations.get_by_code(code.strip()) if code else None
        if invitation is None:
            raise InvitationInvalid()
        if invitation.status == InvitationStatus.ACCEPTED:
            raise InvitationAlreadyUsed()
        if invitation.is_expired(self._clock()):
            raise InvitationExpired()
        if caller_email is not None and not invitation.matches_email(caller_email):
            raise InvitationEmailMismatch()
        return await self._details(invitation)

    async def get_invitation_details(self, code: str) -> Optional[InvitationDetails]:
        """Details of a pending, unexpired code; None for anything else."""
        invitation = await self._store.invitations.get_by_code(code.strip()) if code else None
        if invitation is None or invitation.status != InvitationStatus.PENDING:
            return None
        if invitation.is_expired(self._clock()):
            return None
        try:
            return await self._details(invitation)
        except InvitationInvalid:
            return None

    async def accept(self, code: str, access_token: Optional[str]) -> OrganizationSummary:
        if not access_token:
            raise NotAuthenticated("Sign in before accepting an invitation")
        if not code or not code.strip():
            raise InvitationInvalid("Invitation code is required")
        summary = await self._gateway.accept_invitation(code.strip(), access_token)
        logger.info("Invitation accepted", organization_id=summary.id)
        return summary

    async def _details(self, invitation: Invitation) -> InvitationDetails:
        organization = await self._store.organizations.get_by_id(invitation.organization_id)
        if organization is None:
            raise InvitationInvalid("Organization not found")
        return InvitationDetails(
            code=invitation.code,
            organization_id=organization.id,
            organization_name=organization.name,
            invited_email=invitation.invited_email,
            role=invitation.role.value,
            expires_at=invitation.expires_at,
        )
