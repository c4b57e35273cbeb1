"""GoTrue-compatible identity provider adapter (``/auth/v1`` REST API)."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from identity.domain.entities.identity import Identity, Session
from identity.domain.events.auth_events import SessionEventType
from identity.domain.exception import (
    BackendUnavailable,
    IdentityProviderError,
    InvalidCredentials,
    NotAuthenticated,
)
from identity.domain.protocols import SessionListener
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoTrueIdentityProvider:
    """
    Hosted identity provider client for one client context.

    The current session lives on the instance; every change is pushed to
    the registered listeners once the HTTP call has succeeded.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/auth/v1"
        self._api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock
        self._current: Optional[Session] = None
        self._listeners: list[SessionListener] = []

    async def aclose(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401):
            logger.info("Provider rejected credentials", status_code=response.status_code)
            raise InvalidCredentials()
        data = self._json_or_raise(response)
        session = self._parse_session(data)
        self._current = session
        self._emit(SessionEventType.SIGNED_IN, session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        response = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": dict(metadata or {})},
        )
        data = self._json_or_raise(response)
        user = data.get("user", data)
        if data.get("access_token"):
            session = self._parse_session(data)
            self._current = session
            self._emit(SessionEventType.SIGNED_IN, session)
        return self._parse_identity(user)

    async def sign_out(self) -> None:
        session = self._current
        if session is None:
            return
        self._current = None
        try:
            response = await self._request("POST", "/logout", token=session.access_token)
            if response.status_code >= 400 and response.status_code != 401:
                logger.warning("Provider logout failed", status_code=response.status_code)
        finally:
            # Local session is gone either way.
            self._emit(SessionEventType.SIGNED_OUT, None)

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await self._request("POST", "/recover", params=params, json={"email": email})
        self._json_or_raise(response, allow_empty=True)

    async def update_user(
        self,
        *,
        password: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        session = self._current
        if session is None:
            raise NotAuthenticated()
        body: Dict[str, Any] = {}
        if password is not None:
            body["password"] = password
        if metadata:
            body["data"] = dict(metadata)
        response = await self._request("PUT", "/user", token=session.access_token, json=body)
        if response.status_code == 401:
            raise NotAuthenticated()
        identity = self._parse_identity(self._json_or_raise(response))
        self._current = Session(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            identity=identity,
        )
        self._emit(SessionEventType.USER_UPDATED, self._current)
        return identity

    async def get_session(self) -> Optional[Session]:
        session = self._current
        if session is None or session.is_expired(self._clock()):
            return None
        return session

    async def get_user(self, access_token: str) -> Optional[Identity]:
        response = await self._request("GET", "/user", token=access_token)
        if response.status_code in (401, 403, 404):
            return None
        return self._parse_identity(self._json_or_raise(response))

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"apikey": self._api_key, "Content-Type": "application/json"}
        headers["Authorization"] = f"Bearer {token or self._api_key}"
        try:
            return await self.client.request(method, f"{self.base_url}{path}", headers=headers, params=params, json=json)
        except httpx.TimeoutException as exc:
            logger.error("Identity provider timeout", path=path)
            raise BackendUnavailable("Identity provider timed out") from exc
        except httpx.TransportError as exc:
            logger.error("Identity provider unreachable", path=path, error=str(exc))
            raise BackendUnavailable("Identity provider unreachable") from exc

    @staticmethod
    def _json_or_raise(response: httpx.Response, *, allow_empty: bool = False) -> Dict[str, Any]:
        if response.status_code >= 500:
            raise BackendUnavailable(f"Identity provider error ({response.status_code})")
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            message = payload.get("msg") or payload.get("error_description") or payload.get("message") or "Unknown error"
            raise IdentityProviderError(message, details={"status": response.status_code})
        if not response.content:
            if allow_empty:
                return {}
            raise IdentityProviderError("Empty response from identity provider")
        return response.json()

    @staticmethod
    def _parse_identity(user: Mapping[str, Any]) -> Identity:
        return Identity(
            id=str(user["id"]),
            email=str(user.get("email") or "").lower(),
            metadata=dict(user.get("user_metadata") or {}),
        )

    def _parse_session(self, data: Mapping[str, Any]) -> Session:
        expires_at_raw = data.get("expires_at")
        if expires_at_raw:
            expires_at = datetime.fromtimestamp(int(expires_at_raw), tz=timezone.utc)
        else:
            expires_at = self._clock() + timedelta(seconds=int(data.get("expires_in", 3600)))
        return Session(
            access_token=str(data["access_token"]),
            refresh_token=str(data.get("refresh_token", "")),
            expires_at=expires_at,
            identity=self._parse_identity(data["user"]),
        )

    def _emit(self, event_type: SessionEventType, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(event_type, session)
