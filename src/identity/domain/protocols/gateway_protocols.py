"""
Remote operation protocols: invitation acceptance and client IP lookup.
"""
from __future__ import annotations

from typing import Optional, Protocol

from identity.domain.entities.organization import OrganizationSummary


class IInvitationGateway(Protocol):
    async def accept_invitation(self, code: str, access_token: str) -> OrganizationSummary:
        """
        Redeem a code through the privileged remote operation.

        Raises the Invitation* errors verbatim.
        """
        ...


class IIpLookup(Protocol):
    async def lookup(self) -> Optional[str]:
        """Public IP of this client, or None. Never raises."""
        ...
