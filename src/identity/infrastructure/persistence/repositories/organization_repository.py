"""
Organization Repository Implementation
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from identity.domain.entities.organization import Organization
from identity.domain.exception import BackendUnavailable
from identity.infrastructure.persistence.models.organization_model import OrganizationModel
from shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository


class OrganizationRepository(SQLAlchemyRepository[Organization, OrganizationModel]):
    """Organization repository implementation."""

    unavailable_error = BackendUnavailable

    def _to_entity(self, model: OrganizationModel) -> Organization:
        return Organization(
            id=model.id,
            name=model.name,
            plan_type=model.plan_type,
            settings=dict(model.settings or {}),
        )

    def _to_model(self, entity: Organization) -> OrganizationModel:
        return OrganizationModel(
            id=entity.id,
            name=entity.name,
            plan_type=entity.plan_type,
            settings=dict(entity.settings),
        )

    async def get_by_id(self, organization_id: str) -> Optional[Organization]:
        async with self._transaction() as session:
            result = await session.execute(
                select(OrganizationModel).where(OrganizationModel.id == organization_id)
            )
            model = result.scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def add(self, organization: Organization) -> Organization:
        async with self._transaction() as session:
            model = self._to_model(organization)
            session.add(model)
            await session.flush()
            return self._to_entity(model)
