"""
Organization Repository Protocol (Interface)
"""
from __future__ import annotations

from typing import Optional, Protocol

from identity.domain.entities.organization import Organization


class IOrganizationRepository(Protocol):
    """Organization repository interface"""

    async def get_by_id(self, organization_id: str) -> Optional[Organization]:
        """Get organization by ID"""
        ...

    async def add(self, organization: Organization) -> Organization:
        """Create a new organization"""
        ...
