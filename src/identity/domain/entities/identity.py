"""
Identity and Session Entities
Owned by the external identity provider; immutable from this side.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Identity:
    """An authenticated principal as known to the identity provider."""

    id: str
    email: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> Optional[str]:
        value = self.metadata.get("full_name")
        return str(value) if value else None


@dataclass(frozen=True)
class Session:
    """
    A live authenticated session.

    A Session implies its Identity exists; it says nothing about whether a
    Profile has been provisioned yet.
    """

    access_token: str
    refresh_token: str
    expires_at: datetime
    identity: Identity

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return current >= self.expires_at
