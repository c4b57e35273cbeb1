"""
SQL-backed identity data store.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from identity.infrastructure.persistence import models  # noqa: F401  registers tables on Base.metadata
from identity.infrastructure.persistence.repositories import (
    AuditLogRepository,
    InvitationRepository,
    OrganizationRepository,
    ProfileRepository,
)
from shared.infrastructure.database.base_model import Base
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class SqlAlchemyIdentityDataStore:
    """All identity repositories over one session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.profiles = ProfileRepository(session_factory)
        self.organizations = OrganizationRepository(session_factory)
        self.audit_logs = AuditLogRepository(session_factory)
        self.invitations = InvitationRepository(session_factory, self.profiles)


async def create_identity_schema(engine: AsyncEngine) -> None:
    """Create the identity tables if missing (local development and tests)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("identity_schema_ready", tables=sorted(Base.metadata.tables))
