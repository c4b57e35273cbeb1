"""
Profile Resolver
Fetches the application profile for an identity, riding out the window in
which the profile row has not been provisioned yet.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from identity.domain.entities.organization import Organization
from identity.domain.entities.profile import Profile
from identity.domain.exception import ProfileNotFoundTransient
from identity.domain.protocols import IIdentityDataStore
from shared.config import Settings
from shared.infrastructure.observability.logger import get_logger
from shared.utils.retry import RetriesExhausted, RetryCancelled, Sleep, bounded_retry

logger = get_logger(__name__)


class ProfileResolver:
    """
    Bounded-retry profile lookup.

    Only "not found" and per-attempt timeouts are retried. Any other
    failure is logged and resolves to None immediately, as does running
    out of attempts (the "account setup in progress" terminal state).
    """

    def __init__(
        self,
        store: IIdentityDataStore,
        *,
        attempts: int = 10,
        delay: float = 0.5,
        attempt_timeout: Optional[float] = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._attempts = attempts
        self._delay = delay
        self._attempt_timeout = attempt_timeout
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        store: IIdentityDataStore,
        settings: Settings,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> "ProfileResolver":
        return cls(
            store,
            attempts=settings.profile_retry_attempts,
            delay=settings.profile_retry_delay_seconds,
            attempt_timeout=settings.profile_attempt_timeout_seconds,
            sleep=sleep,
        )

    async def fetch(self, identity_id: str) -> Profile:
        """Single attempt; raises ProfileNotFoundTransient when the row is missing."""
        profile = await self._store.profiles.get_by_identity_id(identity_id)
        if profile is None:
            raise ProfileNotFoundTransient(identity_id)
        return profile

    async def resolve(
        self,
        identity_id: str,
        *,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> Optional[Profile]:
        def _on_retry(attempt: int, error: BaseException) -> None:
            logger.info(
                "Profile not available yet, retrying",
                identity_id=identity_id,
                attempt=attempt,
                max_attempts=self._attempts,
                reason=error.__class__.__name__,
            )

        try:
            profile = await bounded_retry(
                lambda: self.fetch(identity_id),
                attempts=self._attempts,
                delay=self._delay,
                attempt_timeout=self._attempt_timeout,
                retry_on=(ProfileNotFoundTransient,),
                should_continue=should_continue,
                sleep=self._sleep,
                on_retry=_on_retry,
            )
        except RetriesExhausted as exc:
            logger.warning(
                "Profile still missing after retries; account setup in progress",
                identity_id=identity_id,
                attempts=exc.attempts,
            )
            return None
        except RetryCancelled as exc:
            logger.debug("Profile resolution superseded", identity_id=identity_id, attempts=exc.attempts)
            return None
        except Exception as exc:
            logger.error(
                "Profile fetch failed",
                identity_id=identity_id,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            return None

        logger.debug("Profile resolved", identity_id=identity_id, role=profile.role.value)
        return profile

    async def resolve_organization(self, organization_id: Optional[str]) -> Optional[Organization]:
        if not organization_id:
            return None
        try:
            organization = await self._store.organizations.get_by_id(organization_id)
        except Exception as exc:
            logger.error(
                "Organization fetch failed",
                organization_id=organization_id,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            return None
        if organization is None:
            logger.warning("Organization not found", organization_id=organization_id)
        return organization
