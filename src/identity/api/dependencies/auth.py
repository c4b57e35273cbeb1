"""
Authentication Dependencies
"""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from identity.api.dependencies.context import get_identity_provider
from identity.domain.entities.identity import Identity
from identity.domain.exception import NotAuthenticated
from identity.domain.protocols import IIdentityProvider
from shared.infrastructure.observability.logger import bind_context, get_logger

logger = get_logger(__name__)

# auto_error=False so a missing header renders as the usual problem JSON
security = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    provider: Annotated[IIdentityProvider, Depends(get_identity_provider)],
) -> Identity:
    """
    Resolve the bearer token to an identity through the provider.

    Raises:
        NotAuthenticated: header missing, token invalid or revoked
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("Missing authorization header")

    identity = await provider.get_user(credentials.credentials)
    if identity is None:
        logger.info("Bearer token rejected")
        raise NotAuthenticated("Invalid or expired token")

    bind_context(identity_id=identity.id)
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
