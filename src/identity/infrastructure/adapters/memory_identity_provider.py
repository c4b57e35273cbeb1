"""
In-process identity provider.

Keeps accounts (argon2 hashes) and bearer tokens in memory and pushes
session notifications to listeners the way a hosted provider's client
does. Used for local development and tests; a single instance can back
one client context and the server-side token checks at the same time.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from identity.domain.entities.identity import Identity, Session
from identity.domain.events.auth_events import SessionEventType
from identity.domain.exception import InvalidCredentials, NotAuthenticated
from identity.domain.protocols import SessionListener
from identity.infrastructure.adapters.password_service import PasswordService
from shared.exceptions import ConflictError, ValidationError
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Account:
    identity: Identity
    password_hash: str
    reset_requests: int = 0


@dataclass
class _TokenRecord:
    session: Session
    revoked: bool = False


class InMemoryIdentityProvider:
    def __init__(
        self,
        passwords: Optional[PasswordService] = None,
        *,
        session_ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._passwords = passwords or PasswordService()
        self._session_ttl = session_ttl
        self._clock = clock
        self._accounts: dict[str, _Account] = {}
        self._tokens: dict[str, _TokenRecord] = {}
        self._current: Optional[Session] = None
        self._listeners: list[SessionListener] = []

    # ------------------------------------------------------------------
    # Admin helpers (seeding, simulated external events)
    # ------------------------------------------------------------------
    def create_account(
        self,
        email: str,
        password: str,
        *,
        identity_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        key = email.strip().lower()
        if key in self._accounts:
            raise ConflictError(f"Email already registered: {key}")
        identity = Identity(id=identity_id or str(uuid4()), email=key, metadata=dict(metadata or {}))
        self._accounts[key] = _Account(identity=identity, password_hash=self._passwords.hash_password(password))
        return identity

    def revoke_sessions(self, identity_id: str) -> int:
        """Revoke every token for an identity, as an administrator would."""
        revoked = 0
        for record in self._tokens.values():
            if record.session.identity.id == identity_id and not record.revoked:
                record.revoked = True
                revoked += 1
        if self._current is not None and self._current.identity.id == identity_id:
            self._current = None
            self._emit(SessionEventType.SIGNED_OUT, None)
        logger.info("Sessions revoked", identity_id=identity_id, count=revoked)
        return revoked

    def reset_requests(self, email: str) -> int:
        account = self._accounts.get(email.strip().lower())
        return account.reset_requests if account else 0

    # ------------------------------------------------------------------
    # Provider contract
    # ------------------------------------------------------------------
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        account = self._accounts.get(email.strip().lower())
        if account is None or not self._passwords.verify_password(password, account.password_hash):
            raise InvalidCredentials()
        session = self._issue(account.identity)
        self._current = session
        self._emit(SessionEventType.SIGNED_IN, session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        try:
            return self.create_account(email, password, metadata=metadata)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    async def sign_out(self) -> None:
        session = self._current
        if session is None:
            return
        record = self._tokens.get(session.access_token)
        if record is not None:
            record.revoked = True
        self._current = None
        self._emit(SessionEventType.SIGNED_OUT, None)

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        account = self._accounts.get(email.strip().lower())
        # Unknown addresses succeed silently so accounts cannot be enumerated.
        if account is not None:
            account.reset_requests += 1

    async def update_user(
        self,
        *,
        password: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        session = self._current
        if session is None:
            raise NotAuthenticated()
        account = self._accounts[session.identity.email]
        if password is not None:
            try:
                account.password_hash = self._passwords.hash_password(password)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        if metadata:
            merged = {**account.identity.metadata, **metadata}
            account.identity = Identity(id=account.identity.id, email=account.identity.email, metadata=merged)
        self._emit(SessionEventType.USER_UPDATED, self._current)
        return account.identity

    async def get_session(self) -> Optional[Session]:
        session = self._current
        if session is None:
            return None
        record = self._tokens.get(session.access_token)
        if record is None or record.revoked or session.is_expired(self._clock()):
            return None
        return session

    async def get_user(self, access_token: str) -> Optional[Identity]:
        record = self._tokens.get(access_token)
        if record is None or record.revoked or record.session.is_expired(self._clock()):
            return None
        account = self._accounts.get(record.session.identity.email)
        return account.identity if account else None

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    def _issue(self, identity: Identity) -> Session:
        session = Session(
            access_token=secrets.token_urlsafe(32),
            refresh_token=secrets.token_urlsafe(32),
            expires_at=self._clock() + self._session_ttl,
            identity=identity,
        )
        self._tokens[session.access_token] = _TokenRecord(session=session)
        return session

    def _emit(self, event_type: SessionEventType, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(event_type, session)
