"""
Lockout Policy
Resolves the failed-login threshold for a profile.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from identity.domain.entities.organization import Organization


@dataclass(frozen=True)
class LockoutPolicy:
    """
    Effective lockout rule.

    Defaults come from configuration; an organization's
    security.accessControl settings override them, and autoLockAccount
    false disables locking for that organization.
    """

    max_failed_attempts: int = 5
    lockout: timedelta = timedelta(minutes=30)
    enabled: bool = True

    def for_organization(self, organization: Optional[Organization]) -> "LockoutPolicy":
        if organization is None:
            return self
        settings = organization.access_control
        return LockoutPolicy(
            max_failed_attempts=settings.max_failed_attempts or self.max_failed_attempts,
            lockout=timedelta(minutes=settings.lockout_minutes) if settings.lockout_minutes else self.lockout,
            enabled=self.enabled and settings.auto_lock_account,
        )
