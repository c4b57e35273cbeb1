"""
FastAPI application for the privileged identity endpoints.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from identity.api.routes import invitations_router
from identity.application.factories import build_invitation_service
from identity.application.services.invitation_service import InvitationService
from identity.domain.protocols import IIdentityProvider
from identity.infrastructure.adapters.gotrue_identity_provider import GoTrueIdentityProvider
from identity.infrastructure.persistence.sql_store import SqlAlchemyIdentityDataStore
from shared.config import Settings, get_settings
from shared.database.engine import close_database_engine, create_database_engine, create_session_factory
from shared.exceptions import register_exception_handlers
from shared.infrastructure.observability.logger import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(
    *,
    settings: Optional[Settings] = None,
    identity_provider: Optional[IIdentityProvider] = None,
    invitation_service: Optional[InvitationService] = None,
) -> FastAPI:
    """
    Build the API.

    Collaborators passed in are used as-is (tests, embedding). Otherwise
    the lifespan opens the database from DATABASE_URL and talks to the
    hosted provider at IDENTITY_URL.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = None
        owned_provider: Optional[GoTrueIdentityProvider] = None
        if invitation_service is None:
            engine = await create_database_engine(settings)
            app.state.invitation_service = build_invitation_service(
                settings, SqlAlchemyIdentityDataStore(create_session_factory(engine))
            )
        if identity_provider is None:
            if not settings.identity_url or not settings.identity_api_key:
                raise RuntimeError("IDENTITY_URL and IDENTITY_API_KEY must be configured")
            owned_provider = GoTrueIdentityProvider(
                settings.identity_url,
                settings.identity_api_key,
                timeout=settings.http_timeout_seconds,
            )
            app.state.identity_provider = owned_provider
        logger.info("Identity API started", environment=settings.environment)
        try:
            yield
        finally:
            if owned_provider is not None:
                await owned_provider.aclose()
            if engine is not None:
                await close_database_engine(engine)
            logger.info("Identity API stopped")

    app = FastAPI(
        title="RiskDesk Identity API",
        version="0.1.0",
        lifespan=lifespan,
    )
    if identity_provider is not None:
        app.state.identity_provider = identity_provider
    if invitation_service is not None:
        app.state.invitation_service = invitation_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(invitations_router)
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


def main() -> FastAPI:
    """ASGI factory: ``uvicorn --factory identity.api.app:main``."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)
    return create_app(settings=settings)
