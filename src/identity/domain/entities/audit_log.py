"""
AuditLog Entity - Security and Compliance Audit Trail
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from uuid import uuid4


class AuditAction:
    """Enumeration of auditable actions"""

    # Session transitions (recorded under the provider's event name)
    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"
    USER_UPDATED = "user_updated"

    # Authentication
    LOGOUT = "logout"
    SIGNUP = "signup"
    PASSWORD_UPDATED = "password_updated"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    USER_ACCOUNT_LOCKED = "user_account_locked"
    USER_ACCOUNT_UNLOCKED = "user_account_unlocked"

    # Second factor
    TWO_FACTOR_ENABLED = "two_factor_enabled"
    TWO_FACTOR_DISABLED = "two_factor_disabled"
    BACKUP_CODE_USED = "two_factor_backup_code_used"

    # Organization membership
    INVITATION_CREATED = "invitation_created"
    INVITATION_ACCEPTED = "invitation_accepted"
    USER_PROFILE_UPDATED = "user_profile_updated"
    ORGANIZATION_UPDATED = "organization_updated"


class AuditResource:
    AUTHENTICATION = "authentication"
    INVITATION = "invitation"
    USER = "user"
    ORGANIZATION = "organization"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditLogEntry:
    """
    Append-only audit record.

    Never updated or deleted once written. organization_id is required:
    an event with no resolvable organization is not recorded at all.
    """

    organization_id: str
    action: str
    user_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
