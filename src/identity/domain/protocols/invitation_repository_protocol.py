"""
Invitation Repository Protocol (Interface)
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation
from identity.domain.entities.profile import Profile


class IInvitationRepository(Protocol):
    """
    Invitation repository interface.

    The status transitions are conditional updates: each one only applies
    while the stored status is still pending, so concurrent callers
    cannot both win.
    """

    async def get_by_code(self, code: str) -> Optional[Invitation]:
        ...

    async def find_pending(self, organization_id: str, email: str) -> Optional[Invitation]:
        """Pending invitation for this email in this organization, if any"""
        ...

    async def add(self, invitation: Invitation) -> Invitation:
        ...

    async def accept(
        self,
        code: str,
        *,
        identity: Identity,
        accepted_at: datetime,
    ) -> Optional[tuple[Invitation, Profile]]:
        """
        pending -> accepted, and the redeemer's profile joins the organization
        with the invited role. Both writes commit together or not at all.
        Returns None, writing nothing, if the invitation was not pending.
        """
        ...

    async def mark_expired(self, code: str) -> bool:
        """pending -> expired; returns whether a row changed"""
        ...
