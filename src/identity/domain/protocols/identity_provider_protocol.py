"""
Identity Provider Protocol (Interface)
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol

from identity.domain.entities.identity import Identity, Session
from identity.domain.events.auth_events import SessionEventType

SessionListener = Callable[[SessionEventType, Optional[Session]], None]


class IIdentityProvider(Protocol):
    """
    External identity/session provider as seen from one client context.

    The provider keeps the current session and pushes a notification to
    every listener whenever it changes. Listeners are called
    synchronously and must not block.
    """

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Raises InvalidCredentials on a credential failure"""
        ...

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        ...

    async def sign_out(self) -> None:
        """Revoke the current session, if any"""
        ...

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        ...

    async def update_user(
        self,
        *,
        password: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Identity:
        """Update the identity behind the current session"""
        ...

    async def get_session(self) -> Optional[Session]:
        ...

    async def get_user(self, access_token: str) -> Optional[Identity]:
        """Resolve a bearer token to its identity; None when invalid or revoked"""
        ...

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it"""
        ...
