"""
Authentication DTOs
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from identity.domain.entities.identity import Session


@dataclass(frozen=True)
class SignInResult:
    """
    Outcome of a credential submission that did not raise.

    requires_two_factor=True means no session exists yet; the caller must
    complete verify_two_factor.
    """
    requires_two_factor: bool
    session: Optional[Session] = None


@dataclass(frozen=True)
class TwoFactorEnrollment:
    """
    Pending enrollment material returned by setup.

    Held in memory only until enable() confirms a code.
    """
    secret: str
    enrollment_uri: str
    backup_codes: tuple[str, ...]


@dataclass(frozen=True)
class InvitationDetails:
    code: str
    organization_id: str
    organization_name: str
    invited_email: str
    role: str
    expires_at: datetime
