"""
Audit Emitter
Fire-and-forget audit trail writer. Handles context capture (organization,
client IP, user agent); failures never reach the caller.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from identity.domain.entities.audit_log import AuditLogEntry, AuditResource
from identity.domain.protocols import IAuditLogRepository, IIpLookup
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditContext:
    user_id: Optional[str] = None
    organization_id: Optional[str] = None


ContextProvider = Callable[[], AuditContext]


class AuditEmitter:
    """
    Appends AuditLogEntry records without blocking the caller.

    emit() schedules a background write and returns immediately; drain()
    awaits everything still in flight. An event whose organization cannot
    be resolved is dropped with a warning.
    """

    def __init__(
        self,
        audit_logs: IAuditLogRepository,
        ip_lookup: IIpLookup,
        *,
        user_agent: str,
        context: Optional[ContextProvider] = None,
    ) -> None:
        self._audit_logs = audit_logs
        self._ip_lookup = ip_lookup
        self._user_agent = user_agent
        self._context = context
        self._pending: set[asyncio.Task] = set()

    def bind_context(self, context: ContextProvider) -> None:
        self._context = context

    def emit(
        self,
        action: str,
        *,
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        # Resolve ambient context now, not when the task runs.
        ambient = self._context() if self._context else AuditContext()
        task = asyncio.get_running_loop().create_task(
            self.record(
                action,
                user_id=user_id or ambient.user_id,
                organization_id=organization_id or ambient.organization_id,
                details=details,
                resource_type=resource_type,
                resource_id=resource_id,
            ),
            name=f"audit:{action}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def log_auth(
        self,
        action: str,
        *,
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.emit(
            action,
            user_id=user_id,
            organization_id=organization_id,
            details=details,
            resource_type=AuditResource.AUTHENTICATION,
        )

    def log_user(self, action: str, user_id: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self.emit(action, details=details, resource_type=AuditResource.USER, resource_id=user_id)

    def log_organization(
        self,
        action: str,
        organization_id: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.emit(
            action,
            organization_id=organization_id,
            details=details,
            resource_type=AuditResource.ORGANIZATION,
            resource_id=organization_id,
        )

    async def record(
        self,
        action: str,
        *,
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> Optional[AuditLogEntry]:
        """Write one entry now. Returns None when nothing was written."""
        if not organization_id:
            logger.warning("Cannot log audit event: no organization ID available", action=action)
            return None

        try:
            ip_address = await self._ip_lookup.lookup()
        except Exception as exc:
            logger.warning("Failed to get client IP address", error=str(exc))
            ip_address = None

        entry = AuditLogEntry(
            organization_id=organization_id,
            action=action,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            details=dict(details or {}),
            ip_address=ip_address,
            user_agent=self._user_agent,
        )
        try:
            saved = await self._audit_logs.add(entry)
        except Exception as exc:
            logger.error(
                "Error logging audit event",
                action=action,
                organization_id=organization_id,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            return None

        logger.info(
            "Audit log created",
            action=action,
            organization_id=organization_id,
            user_id=user_id,
            resource_type=resource_type,
        )
        return saved

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
