from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from shared.config import Settings
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


async def create_database_engine(settings: Settings, *, database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the async engine with pooling defaults and run a smoke query.

    SQLite URLs (tests) get a NullPool and no server settings.
    """
    url = database_url or settings.database_url
    if not url:
        raise RuntimeError("DATABASE_URL is not configured")

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False, poolclass=NullPool)
    else:
        engine = create_async_engine(
            url,
            echo=settings.debug and not settings.is_prod,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=30,
            pool_recycle=3600,
            pool_pre_ping=True,
            connect_args={
                "server_settings": {
                    "application_name": f"riskdesk-identity-{settings.environment}",
                    "statement_timeout": "30000",  # 30s
                }
            },
        )

    async with engine.begin() as conn:
        await conn.execute(sa.text("SELECT 1"))

    logger.info("Database connection established", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
    )


async def close_database_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("Database engine disposed")
