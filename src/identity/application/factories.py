"""
Composition helpers: wire the identity core from Settings and ports.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from identity.application.services.audit_emitter import AuditEmitter
from identity.application.services.invitation_join_flow import InvitationJoinFlow
from identity.application.services.invitation_service import InvitationService
from identity.application.services.profile_resolver import ProfileResolver
from identity.application.services.two_factor_service import TwoFactorService
from identity.application.session_store import SessionStore
from identity.domain.protocols import IIdentityDataStore, IIdentityProvider, IInvitationGateway, IIpLookup
from identity.domain.services.lockout_policy import LockoutPolicy
from identity.infrastructure.adapters.gotrue_identity_provider import GoTrueIdentityProvider
from identity.infrastructure.adapters.invitation_gateway import HttpInvitationGateway
from identity.infrastructure.adapters.ip_lookup_client import IpifyLookupClient
from identity.infrastructure.adapters.totp_service import TotpService
from shared.config import Settings
from shared.infrastructure.messaging.event_bus import EventBus
from shared.utils.retry import Sleep

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def lockout_policy_from_settings(settings: Settings) -> LockoutPolicy:
    return LockoutPolicy(
        max_failed_attempts=settings.max_failed_login_attempts,
        lockout=timedelta(minutes=settings.lockout_minutes),
    )


def build_session_store(
    settings: Settings,
    provider: IIdentityProvider,
    data_store: IIdentityDataStore,
    gateway: IInvitationGateway,
    ip_lookup: IIpLookup,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = _utcnow,
    event_bus: Optional[EventBus] = None,
) -> SessionStore:
    """Build one client context's SessionStore with all of its collaborators."""
    audit = AuditEmitter(data_store.audit_logs, ip_lookup, user_agent=settings.audit_user_agent)
    two_factor = TwoFactorService(
        data_store,
        provider,
        audit,
        TotpService(settings.two_factor_issuer),
        backup_code_count=settings.backup_code_count,
    )
    return SessionStore(
        provider,
        data_store,
        ProfileResolver.from_settings(data_store, settings, sleep=sleep),
        audit,
        two_factor,
        InvitationJoinFlow(data_store, gateway, clock=clock),
        lockout=lockout_policy_from_settings(settings),
        challenge_ttl=timedelta(seconds=settings.two_factor_challenge_ttl_seconds),
        event_bus=event_bus,
        clock=clock,
    )


def build_remote_session_store(
    settings: Settings,
    data_store: IIdentityDataStore,
    *,
    client: Optional[httpx.AsyncClient] = None,
    event_bus: Optional[EventBus] = None,
) -> SessionStore:
    """
    SessionStore against the hosted provider and remote functions.

    Requires IDENTITY_URL, IDENTITY_API_KEY and FUNCTIONS_URL. One httpx
    client is shared by the three adapters when given.
    """
    if not settings.identity_url or not settings.identity_api_key:
        raise RuntimeError("IDENTITY_URL and IDENTITY_API_KEY must be configured")
    if not settings.functions_url:
        raise RuntimeError("FUNCTIONS_URL must be configured")

    timeout = settings.http_timeout_seconds
    provider = GoTrueIdentityProvider(
        settings.identity_url,
        settings.identity_api_key,
        timeout=timeout,
        client=client,
    )
    gateway = HttpInvitationGateway(
        settings.functions_url,
        api_key=settings.identity_api_key,
        timeout=timeout,
        client=client,
    )
    ip_lookup = IpifyLookupClient(
        settings.ip_lookup_url,
        timeout=settings.ip_lookup_timeout_seconds,
        client=client,
    )
    return build_session_store(settings, provider, data_store, gateway, ip_lookup, event_bus=event_bus)


def build_invitation_service(
    settings: Settings,
    data_store: IIdentityDataStore,
    *,
    clock: Clock = _utcnow,
) -> InvitationService:
    return InvitationService(
        data_store,
        default_ttl=timedelta(days=settings.invitation_ttl_days),
        clock=clock,
    )
