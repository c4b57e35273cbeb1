"""
Invitation Repository Implementation

Status transitions are single conditional UPDATEs guarded by
``status = 'pending'``; the row count tells the caller whether it won.
Acceptance upserts the redeemer's profile in the same transaction.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.profile import Profile
from identity.domain.exception import BackendUnavailable
from identity.domain.value_objects.role import Role
from identity.infrastructure.persistence.models.invitation_model import InvitationModel
from identity.infrastructure.persistence.repositories.profile_repository import ProfileRepository
from shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository, aware
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class InvitationRepository(SQLAlchemyRepository[Invitation, InvitationModel]):
    unavailable_error = BackendUnavailable

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        profiles: Optional[ProfileRepository] = None,
    ) -> None:
        super().__init__(session_factory)
        self._profiles = profiles or ProfileRepository(session_factory)

    def _to_entity(self, model: InvitationModel) -> Invitation:
        return Invitation(
            id=model.id,
            code=model.invitation_code,
            organization_id=model.organization_id,
            invited_email=model.invited_email,
            role=Role.parse(model.role) or Role.USER,
            status=InvitationStatus(model.status),
            invited_by=model.invited_by,
            expires_at=aware(model.expires_at),
            created_at=aware(model.created_at),
            accepted_at=aware(model.accepted_at),
            accepted_by=model.accepted_by,
        )

    def _to_model(self, entity: Invitation) -> InvitationModel:
        return InvitationModel(
            id=entity.id,
            invitation_code=entity.code,
            organization_id=entity.organization_id,
            invited_email=entity.invited_email.strip().lower(),
            role=entity.role.value,
            status=entity.status.value,
            invited_by=entity.invited_by,
            expires_at=entity.expires_at,
            created_at=entity.created_at,
            accepted_at=entity.accepted_at,
            accepted_by=entity.accepted_by,
        )

    async def get_by_code(self, code: str) -> Optional[Invitation]:
        async with self._transaction() as session:
            result = await session.execute(
                select(InvitationModel).where(InvitationModel.invitation_code == code)
            )
            model = result.scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def find_pending(self, organization_id: str, email: str) -> Optional[Invitation]:
        async with self._transaction() as session:
            result = await session.execute(
                select(InvitationModel).where(
                    InvitationModel.organization_id == organization_id,
                    func.lower(InvitationModel.invited_email) == email.strip().lower(),
                    InvitationModel.status == InvitationStatus.PENDING.value,
                )
            )
            model = result.scalars().first()
            return self._to_entity(model) if model else None

    async def add(self, invitation: Invitation) -> Invitation:
        async with self._transaction() as session:
            session.add(self._to_model(invitation))
        return invitation

    async def accept(
        self,
        code: str,
        *,
        identity: Identity,
        accepted_at: datetime,
    ) -> Optional[tuple[Invitation, Profile]]:
        async with self._transaction() as session:
            result = await session.execute(
                update(InvitationModel)
                .where(
                    InvitationModel.invitation_code == code,
                    InvitationModel.status == InvitationStatus.PENDING.value,
                )
                .values(
                    status=InvitationStatus.ACCEPTED.value,
                    accepted_by=identity.id,
                    accepted_at=accepted_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info("invitation_accept_lost", code_prefix=code[:6])
                return None
            model = (
                await session.execute(
                    select(InvitationModel).where(InvitationModel.invitation_code == code)
                )
            ).scalar_one()
            invitation = self._to_entity(model)
            profile = await self._profiles.join_in(session, identity, invitation)
            return invitation, profile

    async def mark_expired(self, code: str) -> bool:
        async with self._transaction() as session:
            result = await session.execute(
                update(InvitationModel)
                .where(
                    InvitationModel.invitation_code == code,
                    InvitationModel.status == InvitationStatus.PENDING.value,
                )
                .values(status=InvitationStatus.EXPIRED.value)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
