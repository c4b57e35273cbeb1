# src/identity/domain/events/auth_events.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from identity.domain.entities.identity import Session
from shared.domain.domain_event import DomainEvent


class SessionEventType(str, Enum):
    """Notification kinds pushed by the identity provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class SessionChanged(DomainEvent):
    """
    Raised by the identity provider whenever the current session changes.

    ``session`` is None for SIGNED_OUT and for an INITIAL_SESSION with
    nobody signed in.
    """

    event_type: SessionEventType = SessionEventType.INITIAL_SESSION
    session: Optional[Session] = None

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update({
            "session_event": self.event_type.value,
            "identity_id": self.session.identity.id if self.session else None,
        })
        return base


@dataclass(frozen=True)
class AuthStateChanged(DomainEvent):
    """
    Raised by the session store after its observable state changes.

    Used for:
    - Re-rendering consumers bound to identity / profile / organization
    - Tests waiting on a specific transition
    """

    state: str = ""
    identity_id: Optional[str] = None
    organization_id: Optional[str] = None
    role: Optional[str] = None
    loading: bool = False

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update({
            "state": self.state,
            "identity_id": self.identity_id,
            "organization_id": self.organization_id,
            "role": self.role,
            "loading": self.loading,
        })
        return base
