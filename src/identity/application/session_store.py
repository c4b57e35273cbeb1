"""
Session Store
Single source of truth for the current identity, session, profile and
organization in one client context.

Provider notifications are queued and consumed by one task. Each one
starts a resolution pass tagged with a generation number; a pass only
applies its result while its generation is still the latest, so a slow
pass for an old session can never overwrite a newer one.
"""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional

from identity.application.dto.auth_dto import InvitationDetails, SignInResult, TwoFactorEnrollment
from identity.application.services.audit_emitter import AuditContext, AuditEmitter
from identity.application.services.invitation_join_flow import InvitationJoinFlow
from identity.application.services.profile_resolver import ProfileResolver
from identity.application.services.two_factor_service import TwoFactorService
from identity.domain.entities.audit_log import AuditAction
from identity.domain.entities.identity import Identity, Session
from identity.domain.entities.organization import Organization, OrganizationSummary
from identity.domain.entities.profile import Profile
from identity.domain.events.auth_events import AuthStateChanged, SessionChanged, SessionEventType
from identity.domain.exception import (
    AccountLocked,
    InvalidCredentials,
    NotAuthenticated,
    ProfileUnavailableTerminal,
    TwoFactorRequired,
)
from identity.domain.protocols import IIdentityDataStore, IIdentityProvider
from identity.domain.services import permission_evaluator
from identity.domain.services.lockout_policy import LockoutPolicy
from identity.domain.value_objects.role import RoleListLike
from shared.infrastructure.messaging.event_bus import EventBus, EventHandler
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    TWO_FACTOR_PENDING = "two_factor_pending"
    AUTHENTICATED = "authenticated"
    LOCKED = "locked"


class ProfileStatus(str, Enum):
    READY = "ready"
    SETUP_IN_PROGRESS = "setup_in_progress"
    ABSENT = "absent"


# Provider notifications in these states belong to a provisional session
# and are never resolved.
_SUBMISSION_STATES = (AuthState.CREDENTIALS_SUBMITTED, AuthState.TWO_FACTOR_PENDING)


@dataclass(frozen=True)
class _PendingChallenge:
    identity_id: str
    email: str
    password: str
    expires_at: datetime


class SessionStore:
    def __init__(
        self,
        provider: IIdentityProvider,
        data_store: IIdentityDataStore,
        resolver: ProfileResolver,
        audit: AuditEmitter,
        two_factor: TwoFactorService,
        join_flow: InvitationJoinFlow,
        *,
        lockout: LockoutPolicy = LockoutPolicy(),
        challenge_ttl: timedelta = timedelta(minutes=5),
        event_bus: Optional[EventBus] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._provider = provider
        self._data = data_store
        self._resolver = resolver
        self._audit = audit
        self._two_factor = two_factor
        self._join_flow = join_flow
        self._lockout = lockout
        self._challenge_ttl = challenge_ttl
        self._events = event_bus or EventBus()
        self._clock = clock

        self._identity: Optional[Identity] = None
        self._session: Optional[Session] = None
        self._profile: Optional[Profile] = None
        self._organization: Optional[Organization] = None
        self._state = AuthState.UNAUTHENTICATED
        self._profile_status = ProfileStatus.ABSENT
        self._loading = True

        self._generation = 0
        self._queue: asyncio.Queue[SessionChanged] = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._passes: set[asyncio.Task] = set()
        self._unsubscribe_provider: Optional[Callable[[], None]] = None
        self._suppressed = 0

        self._challenge: Optional[_PendingChallenge] = None
        self._pending_invitation: Optional[str] = None
        self._last_invitation_error: Optional[Exception] = None

        self._audit.bind_context(self._audit_context)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def profile(self) -> Optional[Profile]:
        return self._profile

    @property
    def organization(self) -> Optional[Organization]:
        return self._organization

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def profile_status(self) -> ProfileStatus:
        return self._profile_status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_invitation_error(self) -> Optional[Exception]:
        return self._last_invitation_error

    @property
    def departments(self) -> list[str]:
        """Department names from the organization catalog; empty when none are configured."""
        if self._organization is None:
            return []
        return [d.name for d in self._organization.departments]

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        return self._events.subscribe(AuthStateChanged.__name__, handler)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._consumer is not None:
            return
        self._unsubscribe_provider = self._provider.on_session_change(self._on_provider_event)
        self._consumer = asyncio.get_running_loop().create_task(self._consume(), name="session-store")
        session = await self._provider.get_session()
        self._queue.put_nowait(SessionChanged(event_type=SessionEventType.INITIAL_SESSION, session=session))

    async def close(self) -> None:
        if self._unsubscribe_provider is not None:
            self._unsubscribe_provider()
            self._unsubscribe_provider = None
        self._generation += 1
        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
        for task in list(self._passes):
            task.cancel()
        await asyncio.gather(*self._passes, return_exceptions=True)
        await self._audit.drain()

    async def wait_until_settled(self) -> None:
        """Wait until queued notifications, resolution passes and audit writes are done."""
        while True:
            await self._queue.join()
            if self._passes:
                await asyncio.gather(*list(self._passes), return_exceptions=True)
                continue
            await self._audit.drain()
            if self._queue.empty() and not self._passes:
                return

    # ------------------------------------------------------------------
    # Notification intake
    # ------------------------------------------------------------------
    def _on_provider_event(self, event_type: SessionEventType, session: Optional[Session]) -> None:
        if self._suppressed or self._state in _SUBMISSION_STATES:
            logger.debug("Provider notification ignored", session_event=event_type.value, state=self._state.value)
            return
        self._queue.put_nowait(SessionChanged(event_type=event_type, session=session))

    @contextmanager
    def _provider_events_suppressed(self) -> Iterator[None]:
        self._suppressed += 1
        try:
            yield
        finally:
            self._suppressed -= 1

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._generation += 1
                task = asyncio.get_running_loop().create_task(
                    self._resolve_pass(self._generation, event.event_type, event.session),
                    name=f"resolve:{self._generation}",
                )
                self._passes.add(task)
                task.add_done_callback(self._passes.discard)
            finally:
                self._queue.task_done()

    def _discard_queued(self) -> None:
        """Drop notifications not yet picked up by the consumer."""
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._queue.task_done()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------------
    # Resolution pass
    # ------------------------------------------------------------------
    async def _resolve_pass(
        self,
        generation: int,
        event_type: SessionEventType,
        session: Optional[Session],
        *,
        audit: bool = True,
    ) -> None:
        if session is None:
            await self._handle_signed_out(generation, event_type)
            return

        if not self._is_current(generation):
            return
        identity = session.identity
        self._identity = identity
        self._session = session
        self._loading = True

        profile = await self._resolver.resolve(identity.id, should_continue=lambda: self._is_current(generation))
        if not self._is_current(generation):
            return
        organization = await self._resolver.resolve_organization(profile.organization_id if profile else None)
        if not self._is_current(generation):
            return

        self._profile = profile
        self._organization = organization
        self._profile_status = ProfileStatus.READY if profile else ProfileStatus.SETUP_IN_PROGRESS
        self._state = AuthState.LOCKED if profile and profile.is_locked(self._clock()) else AuthState.AUTHENTICATED
        self._loading = False
        logger.info(
            "Session resolved",
            session_event=event_type.value,
            identity_id=identity.id,
            state=self._state.value,
            profile_status=self._profile_status.value,
        )

        if audit and profile and profile.organization_id:
            self._audit.log_auth(event_type.value.lower(), user_id=identity.id, organization_id=profile.organization_id)
        await self._publish()

        if self._pending_invitation and self._state == AuthState.AUTHENTICATED:
            await self._redeem_pending_invitation(generation)

    async def _handle_signed_out(self, generation: int, event_type: SessionEventType) -> None:
        if not self._is_current(generation):
            return
        previous_identity = self._identity
        previous_org = self._profile.organization_id if self._profile else None
        if event_type == SessionEventType.SIGNED_OUT and previous_identity is not None:
            self._audit.log_auth(
                AuditAction.LOGOUT,
                user_id=previous_identity.id,
                organization_id=previous_org,
                details={"reason": "external_revocation"},
            )
            logger.info("Session revoked externally", identity_id=previous_identity.id)
        self._clear()
        await self._publish()

    def _clear(self) -> None:
        self._identity = None
        self._session = None
        self._profile = None
        self._organization = None
        self._state = AuthState.UNAUTHENTICATED
        self._profile_status = ProfileStatus.ABSENT
        self._loading = False

    async def _publish(self) -> None:
        await self._events.publish(
            AuthStateChanged(
                aggregate_id=self._identity.id if self._identity else None,
                aggregate_type="Session",
                state=self._state.value,
                identity_id=self._identity.id if self._identity else None,
                organization_id=self._profile.organization_id if self._profile else None,
                role=self._profile.role.value if self._profile else None,
                loading=self._loading,
            )
        )

    def _audit_context(self) -> AuditContext:
        return AuditContext(
            user_id=self._identity.id if self._identity else None,
            organization_id=self._profile.organization_id if self._profile else None,
        )

    def _establish(self, session: Session) -> None:
        """Commit a durable session and schedule its resolution pass."""
        self._state = AuthState.AUTHENTICATED
        self._identity = session.identity
        self._session = session
        self._queue.put_nowait(SessionChanged(event_type=SessionEventType.SIGNED_IN, session=session))

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    async def sign_in(self, email: str, password: str, *, invitation_code: Optional[str] = None) -> SignInResult:
        """
        Submit credentials.

        Raises AccountLocked (before contacting the provider when a lock is
        active, again once the provider has named the identity, or on the
        attempt that reaches the threshold) and InvalidCredentials. With a
        second factor enabled no session exists, and the lockout counters
        stay untouched, until verify_two_factor succeeds.
        """
        if invitation_code:
            self._pending_invitation = invitation_code.strip()
        now = self._clock()

        known = await self._data.profiles.get_by_email(email)
        if known is not None and known.is_locked(now):
            logger.warning("Sign-in rejected: account locked", identity_id=known.identity_id)
            self._state = AuthState.LOCKED
            await self._publish()
            raise AccountLocked(known.account_locked_until)

        self._challenge = None
        self._state = AuthState.CREDENTIALS_SUBMITTED
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except InvalidCredentials:
            await self._record_failed_attempt(known, now)
            raise
        except Exception:
            self._state = AuthState.UNAUTHENTICATED
            raise

        try:
            identity = session.identity
            profile = await self._data.profiles.get_by_identity_id(identity.id) or known
            if profile is not None and profile.is_locked(now):
                # The email copy can lag the provider; the profile found by id is authoritative.
                await self._provider.sign_out()
                logger.warning("Sign-in rejected: account locked", identity_id=identity.id)
                self._state = AuthState.LOCKED
                await self._publish()
                raise AccountLocked(profile.account_locked_until)

            if profile is not None and profile.two_factor_enabled:
                await self._provider.sign_out()
                # Plaintext kept for the re-sign-in; cleared when the challenge completes or lapses.
                self._challenge = _PendingChallenge(
                    identity_id=identity.id,
                    email=email,
                    password=password,
                    expires_at=now + self._challenge_ttl,
                )
                self._state = AuthState.TWO_FACTOR_PENDING
                logger.info("Second factor required", identity_id=identity.id)
                await self._publish()
                return SignInResult(requires_two_factor=True)

            if profile is not None:
                await self._record_successful_login(profile, now)
        except AccountLocked:
            raise
        except Exception:
            self._state = AuthState.UNAUTHENTICATED
            raise

        self._establish(session)
        logger.info("Signed in", identity_id=session.identity.id)
        return SignInResult(requires_two_factor=False, session=session)

    async def _record_successful_login(self, profile: Profile, now: datetime) -> Profile:
        """Reset the failure counter once the sign-in is complete; audit a lapsed lock being cleared."""
        updated = await self._data.profiles.update(profile.record_successful_login(now))
        if profile.account_locked_until is not None:
            self._audit.log_auth(
                AuditAction.USER_ACCOUNT_UNLOCKED,
                user_id=profile.identity_id,
                organization_id=profile.organization_id,
                details={"locked_until": profile.account_locked_until.isoformat()},
            )
            logger.info("Expired account lock cleared", identity_id=profile.identity_id)
        return updated

    async def _record_failed_attempt(self, known: Optional[Profile], now: datetime) -> None:
        self._state = AuthState.UNAUTHENTICATED
        if known is None:
            return
        organization = await self._resolver.resolve_organization(known.organization_id)
        policy = self._lockout.for_organization(organization)
        updated = known.record_failed_login(
            max_attempts=policy.max_failed_attempts if policy.enabled else None,
            lockout=policy.lockout,
            now=now,
        )
        await self._data.profiles.update(updated)
        logger.info(
            "Sign-in failed",
            identity_id=known.identity_id,
            failed_attempts=updated.failed_login_attempts,
        )

        if updated.is_locked(now) and not known.is_locked(now):
            self._state = AuthState.LOCKED
            self._audit.log_auth(
                AuditAction.USER_ACCOUNT_LOCKED,
                user_id=known.identity_id,
                organization_id=known.organization_id,
                details={
                    "failed_attempts": updated.failed_login_attempts,
                    "locked_until": updated.account_locked_until.isoformat() if updated.account_locked_until else None,
                },
            )
            logger.warning(
                "Account locked after failed sign-in attempts",
                identity_id=known.identity_id,
                locked_until=updated.account_locked_until,
            )
            await self._publish()
            raise AccountLocked(updated.account_locked_until) from None

    async def verify_two_factor(self, code: str) -> Session:
        challenge = self._challenge
        if challenge is None or self._state != AuthState.TWO_FACTOR_PENDING:
            raise TwoFactorRequired("No sign-in is awaiting verification")
        if self._clock() >= challenge.expires_at:
            self._challenge = None
            self._state = AuthState.UNAUTHENTICATED
            await self._publish()
            raise TwoFactorRequired("Verification window expired; sign in again")

        profile = await self._data.profiles.get_by_identity_id(challenge.identity_id)
        if profile is None:
            raise ProfileUnavailableTerminal()
        now = self._clock()
        if profile.is_locked(now):
            self._challenge = None
            self._state = AuthState.LOCKED
            await self._publish()
            raise AccountLocked(profile.account_locked_until)
        # InvalidTwoFactorCode leaves the challenge pending.
        profile = await self._two_factor.verify_at_login(profile, code)

        try:
            session = await self._provider.sign_in_with_password(challenge.email, challenge.password)
            await self._record_successful_login(profile, now)
        except Exception:
            self._challenge = None
            self._state = AuthState.UNAUTHENTICATED
            await self._publish()
            raise
        self._challenge = None
        self._establish(session)
        logger.info("Second factor verified", identity_id=session.identity.id)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        full_name: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        invitation_code: Optional[str] = None,
    ) -> Identity:
        attributes = dict(metadata or {})
        if full_name:
            attributes["full_name"] = full_name
        identity = await self._provider.sign_up(email, password, attributes)
        if invitation_code:
            self._pending_invitation = invitation_code.strip()
        logger.info("Signed up", identity_id=identity.id)
        return identity

    async def sign_out(self) -> None:
        identity = self._identity
        organization_id = self._profile.organization_id if self._profile else None
        if identity is not None:
            # Snapshot taken before teardown; the profile is gone afterwards.
            self._audit.log_auth(AuditAction.LOGOUT, user_id=identity.id, organization_id=organization_id)

        self._generation += 1
        self._discard_queued()
        self._challenge = None
        self._pending_invitation = None
        self._clear()
        await self._publish()
        await self._provider.sign_out()
        logger.info("Signed out", identity_id=identity.id if identity else None)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        await self._provider.reset_password_for_email(email, redirect_to)
        logger.info("Password reset requested")

    async def update_password(self, new_password: str) -> None:
        identity = self._require_identity()
        with self._provider_events_suppressed():
            await self._provider.update_user(password=new_password)
        self._audit.log_auth(
            AuditAction.PASSWORD_UPDATED,
            user_id=identity.id,
            organization_id=self._profile.organization_id if self._profile else None,
        )

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------
    def has_permission(self, permission: object) -> bool:
        if self._state == AuthState.LOCKED:
            return False
        return permission_evaluator.has_permission(self._profile, permission)

    def has_role(self, roles: RoleListLike) -> bool:
        if self._state == AuthState.LOCKED:
            return False
        return permission_evaluator.has_role(self._profile, roles)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    async def refresh_profile(self) -> Optional[Profile]:
        """Re-run resolution for the current session without auditing it."""
        session = self._session
        if session is None:
            return None
        self._generation += 1
        await self._resolve_pass(self._generation, SessionEventType.USER_UPDATED, session, audit=False)
        return self._profile

    def require_profile(self) -> Profile:
        if self._profile is not None:
            return self._profile
        if self._identity is None:
            raise NotAuthenticated()
        raise ProfileUnavailableTerminal()

    # ------------------------------------------------------------------
    # Second factor
    # ------------------------------------------------------------------
    async def setup_two_factor(self) -> TwoFactorEnrollment:
        return await self._two_factor.setup(self._require_identity())

    async def enable_two_factor(self, code: str) -> list[str]:
        codes = await self._two_factor.enable(self._require_identity(), code)
        await self.refresh_profile()
        return list(codes)

    async def disable_two_factor(self, password: str) -> None:
        identity = self._require_identity()
        with self._provider_events_suppressed():
            await self._two_factor.disable(identity, password)
        await self.refresh_profile()

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------
    def set_pending_invitation(self, code: Optional[str]) -> None:
        self._pending_invitation = code.strip() if code else None

    async def join_organization(self, code: str) -> OrganizationSummary:
        self._require_identity()
        token = self._session.access_token if self._session else None
        summary = await self._join_flow.accept(code, token)
        await self.refresh_profile()
        return summary

    async def check_invitation_code(self, code: str) -> InvitationDetails:
        email = self._identity.email if self._identity else None
        return await self._join_flow.check_code(code, email)

    async def get_invitation_details(self, code: str) -> Optional[InvitationDetails]:
        return await self._join_flow.get_invitation_details(code)

    async def _redeem_pending_invitation(self, generation: int) -> None:
        code = self._pending_invitation
        self._pending_invitation = None
        if not code or not self._is_current(generation):
            return
        try:
            await self.join_organization(code)
            self._last_invitation_error = None
        except Exception as exc:
            self._last_invitation_error = exc
            logger.warning(
                "Pending invitation could not be redeemed",
                error_type=exc.__class__.__name__,
                error=str(exc),
            )

    def _require_identity(self) -> Identity:
        if self._identity is None or self._session is None:
            raise NotAuthenticated()
        return self._identity
