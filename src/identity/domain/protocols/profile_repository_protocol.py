"""
Profile Repository Protocol (Interface)
"""
from __future__ import annotations

from typing import Optional, Protocol

from identity.domain.entities.profile import Profile


class IProfileRepository(Protocol):
    """
    Profile repository interface.

    Lookups return None when no row exists yet; transport failures raise
    BackendUnavailable.
    """

    async def get_by_identity_id(self, identity_id: str) -> Optional[Profile]:
        ...

    async def get_by_email(self, email: str) -> Optional[Profile]:
        """Case-insensitive lookup used for pre-authentication lockout checks"""
        ...

    async def add(self, profile: Profile) -> Profile:
        ...

    async def update(self, profile: Profile) -> Profile:
        ...
