"""
SQLAlchemy Repository Base
Async repositories over a session factory (SQLAlchemy 2.x)
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Generic, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.exceptions import ConflictError, DomainError, ServiceUnavailableError
from shared.infrastructure.database.base_model import Base
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

TEntity = TypeVar("TEntity")
TModel = TypeVar("TModel", bound=Base)


def aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SQLAlchemyRepository(Generic[TEntity, TModel]):
    """
    Base for async SQLAlchemy repositories.

    Each operation opens its own session and transaction from the factory,
    so a repository instance is safe to share between tasks.

    Driver failures are translated at this boundary:
    - IntegrityError -> ConflictError
    - OperationalError / InterfaceError / other DBAPI errors -> ``unavailable_error``
    """

    unavailable_error: type[DomainError] = ServiceUnavailableError

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _to_entity(self, model: TModel) -> TEntity:
        raise NotImplementedError("Subclass must implement _to_entity")

    def _to_model(self, entity: TEntity) -> TModel:
        raise NotImplementedError("Subclass must implement _to_model")

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except IntegrityError as exc:
            logger.warning(
                "repository_integrity_error",
                repository=type(self).__name__,
                error=str(exc.orig),
            )
            raise ConflictError("Resource already exists") from exc
        except (OperationalError, InterfaceError, DBAPIError) as exc:
            logger.error(
                "repository_backend_error",
                repository=type(self).__name__,
                error=str(exc),
            )
            raise self.unavailable_error("Data store unavailable") from exc
