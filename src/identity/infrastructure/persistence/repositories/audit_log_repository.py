"""
AuditLog Repository Implementation
Append-only: no update or delete operations are exposed.
"""
from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select

from identity.domain.entities.audit_log import AuditLogEntry
from identity.domain.exception import BackendUnavailable
from identity.infrastructure.persistence.models.audit_log_model import AuditLogModel
from shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository, aware


class AuditLogRepository(SQLAlchemyRepository[AuditLogEntry, AuditLogModel]):
    unavailable_error = BackendUnavailable

    def _to_entity(self, model: AuditLogModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=model.id,
            organization_id=model.organization_id,
            user_id=model.user_id,
            action=model.action,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            details=dict(model.details or {}),
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            created_at=aware(model.created_at),
        )

    def _to_model(self, entity: AuditLogEntry) -> AuditLogModel:
        return AuditLogModel(
            id=entity.id,
            organization_id=entity.organization_id,
            user_id=entity.user_id,
            action=entity.action,
            resource_type=entity.resource_type,
            resource_id=entity.resource_id,
            details=dict(entity.details),
            ip_address=entity.ip_address,
            user_agent=entity.user_agent,
            created_at=entity.created_at,
        )

    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        async with self._transaction() as session:
            session.add(self._to_model(entry))
        return entry

    async def find_by_organization(
        self,
        organization_id: str,
        limit: int = 100,
        action: Optional[str] = None,
    ) -> Sequence[AuditLogEntry]:
        """Newest first."""
        stmt = select(AuditLogModel).where(AuditLogModel.organization_id == organization_id)
        if action is not None:
            stmt = stmt.where(AuditLogModel.action == action)
        stmt = stmt.order_by(AuditLogModel.created_at.desc()).limit(limit)

        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [self._to_entity(m) for m in result.scalars().all()]
