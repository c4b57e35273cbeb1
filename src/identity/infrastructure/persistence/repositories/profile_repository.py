"""
Profile Repository Implementation
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation
from identity.domain.entities.profile import Profile
from identity.domain.exception import BackendUnavailable
from identity.domain.value_objects.role import Role
from identity.infrastructure.persistence.models.profile_model import ProfileModel
from shared.exceptions import NotFoundError
from shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository, aware
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class ProfileRepository(SQLAlchemyRepository[Profile, ProfileModel]):
    """
    Profile repository implementation.

    Emails are stored lowercased so lockout lookups by email are
    case-insensitive. An unrecognized role in the row maps to USER.
    """

    unavailable_error = BackendUnavailable

    def _to_entity(self, model: ProfileModel) -> Profile:
        role = Role.parse(model.role)
        if role is None:
            logger.warning("profile_unknown_role", identity_id=model.identity_id, role=model.role)
            role = Role.USER
        return Profile(
            id=model.id,
            identity_id=model.identity_id,
            email=model.email,
            role=role,
            organization_id=model.organization_id,
            full_name=model.full_name,
            department=model.department,
            two_factor_enabled=model.two_factor_enabled,
            two_factor_secret=model.two_factor_secret,
            backup_codes=tuple(model.backup_codes or ()),
            failed_login_attempts=model.failed_login_attempts,
            account_locked_until=aware(model.account_locked_until),
            last_login=aware(model.last_login),
        )

    def _to_model(self, entity: Profile) -> ProfileModel:
        model = ProfileModel(id=entity.id, identity_id=entity.identity_id)
        self._apply(model, entity)
        return model

    @staticmethod
    def _apply(model: ProfileModel, entity: Profile) -> None:
        model.email = entity.email.strip().lower()
        model.role = entity.role.value
        model.organization_id = entity.organization_id
        model.full_name = entity.full_name
        model.department = entity.department
        model.two_factor_enabled = entity.two_factor_enabled
        model.two_factor_secret = entity.two_factor_secret
        model.backup_codes = list(entity.backup_codes)
        model.failed_login_attempts = entity.failed_login_attempts
        model.account_locked_until = entity.account_locked_until
        model.last_login = entity.last_login

    async def get_by_identity_id(self, identity_id: str) -> Optional[Profile]:
        async with self._transaction() as session:
            result = await session.execute(
                select(ProfileModel).where(ProfileModel.identity_id == identity_id)
            )
            model = result.scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> Optional[Profile]:
        async with self._transaction() as session:
            result = await session.execute(
                select(ProfileModel).where(func.lower(ProfileModel.email) == email.strip().lower())
            )
            model = result.scalars().first()
            return self._to_entity(model) if model else None

    async def add(self, profile: Profile) -> Profile:
        async with self._transaction() as session:
            model = self._to_model(profile)
            session.add(model)
            await session.flush()
            return self._to_entity(model)

    async def update(self, profile: Profile) -> Profile:
        async with self._transaction() as session:
            result = await session.execute(
                select(ProfileModel).where(ProfileModel.identity_id == profile.identity_id)
            )
            model = result.scalar_one_or_none()
            if model is None:
                raise NotFoundError(
                    f"Profile not found for identity {profile.identity_id}",
                    code="profile_not_found",
                )
            self._apply(model, profile)
            await session.flush()
            return self._to_entity(model)

    async def join_in(self, session: AsyncSession, identity: Identity, invitation: Invitation) -> Profile:
        """Create or update the redeemer's profile inside the caller's transaction."""
        result = await session.execute(
            select(ProfileModel).where(ProfileModel.identity_id == identity.id)
        )
        model = result.scalar_one_or_none()
        joined = invitation.membership_for(identity, self._to_entity(model) if model else None)
        if model is None:
            model = self._to_model(joined)
            session.add(model)
        else:
            self._apply(model, joined)
        await session.flush()
        return self._to_entity(model)
