"""
AuditLog Repository Protocol (Interface)
"""
from __future__ import annotations

from typing import Optional, Protocol, Sequence

from identity.domain.entities.audit_log import AuditLogEntry


class IAuditLogRepository(Protocol):
    """Append-only audit log interface"""

    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append a new audit log entry"""
        ...

    async def find_by_organization(
        self,
        organization_id: str,
        limit: int = 100,
        action: Optional[str] = None,
    ) -> Sequence[AuditLogEntry]:
        """Newest-first audit entries for an organization"""
        ...
