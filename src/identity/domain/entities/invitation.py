"""
Invitation Entity
One-time code that places its redeemer into an organization with a role.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from identity.domain.entities.identity import Identity
from identity.domain.entities.profile import Profile
from identity.domain.value_objects.role import Role


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_invitation_code() -> str:
    return secrets.token_urlsafe(24)


@dataclass(frozen=True)
class Invitation:
    """
    Invitation entity.

    Status moves pending -> accepted or pending -> expired, never back.
    The transition itself is owned by the server-side acceptance service.
    """

    code: str
    organization_id: str
    invited_email: str
    role: Role
    expires_at: datetime
    status: InvitationStatus = InvitationStatus.PENDING
    invited_by: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[str] = None

    @classmethod
    def issue(
        cls,
        *,
        organization_id: str,
        invited_email: str,
        role: Role,
        expires_in: timedelta,
        invited_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Invitation":
        issued_at = now or _utcnow()
        return cls(
            code=generate_invitation_code(),
            organization_id=organization_id,
            invited_email=invited_email.strip().lower(),
            role=role,
            expires_at=issued_at + expires_in,
            invited_by=invited_by,
            created_at=issued_at,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.status == InvitationStatus.EXPIRED or (now or _utcnow()) >= self.expires_at

    def matches_email(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() == self.invited_email.strip().lower()

    def accept(self, identity_id: str, now: Optional[datetime] = None) -> "Invitation":
        return replace(
            self,
            status=InvitationStatus.ACCEPTED,
            accepted_at=now or _utcnow(),
            accepted_by=identity_id,
        )

    def expire(self) -> "Invitation":
        return replace(self, status=InvitationStatus.EXPIRED)

    def membership_for(self, identity: Identity, profile: Optional[Profile]) -> Profile:
        """The redeemer's profile after joining; a fresh one when none exists yet."""
        fallback_name = identity.full_name or identity.email.split("@")[0]
        if profile is not None:
            return profile.join_organization(self.organization_id, self.role, fallback_name)
        return Profile(
            id=str(uuid4()),
            identity_id=identity.id,
            email=identity.email.lower(),
            organization_id=self.organization_id,
            role=self.role,
            full_name=fallback_name,
        )
