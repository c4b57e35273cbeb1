"""
Profile Entity
Application-side record for an identity: organization, role, 2FA and lockout state.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from identity.domain.value_objects.role import Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Profile:
    """
    Profile entity.

    Created out-of-band shortly after the identity is created, so it can
    be transiently absent. Every mutator returns a new instance.

    Business Rules:
    - identity_id is unique across profiles
    - An account is locked while account_locked_until is in the future,
      regardless of credential correctness
    - backup_codes holds SHA-256 digests, never plaintext codes
    """

    id: str
    identity_id: str
    email: str
    role: Role = Role.USER
    organization_id: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_secret: Optional[str] = None
    backup_codes: tuple[str, ...] = ()
    failed_login_attempts: int = 0
    account_locked_until: Optional[datetime] = None
    last_login: Optional[datetime] = None

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        """Check if account is currently locked"""
        if self.account_locked_until is None:
            return False
        return (now or _utcnow()) < self.account_locked_until

    def record_failed_login(
        self,
        *,
        max_attempts: Optional[int],
        lockout: timedelta,
        now: Optional[datetime] = None,
    ) -> "Profile":
        """
        Count a failed attempt; the attempt that reaches max_attempts sets
        the lock. max_attempts=None only counts.
        """
        current = now or _utcnow()
        attempts = self.failed_login_attempts + 1
        locked_until = self.account_locked_until
        if max_attempts is not None and attempts >= max_attempts:
            locked_until = current + lockout
        return replace(self, failed_login_attempts=attempts, account_locked_until=locked_until)

    def record_successful_login(self, now: Optional[datetime] = None) -> "Profile":
        return replace(
            self,
            failed_login_attempts=0,
            account_locked_until=None,
            last_login=now or _utcnow(),
        )

    def enable_two_factor(self, secret: str, backup_code_hashes: tuple[str, ...]) -> "Profile":
        return replace(
            self,
            two_factor_enabled=True,
            two_factor_secret=secret,
            backup_codes=backup_code_hashes,
        )

    def disable_two_factor(self) -> "Profile":
        return replace(self, two_factor_enabled=False, two_factor_secret=None, backup_codes=())

    def without_backup_code(self, code_hash: str) -> "Profile":
        return replace(self, backup_codes=tuple(c for c in self.backup_codes if c != code_hash))

    def join_organization(
        self,
        organization_id: str,
        role: Role,
        full_name: Optional[str] = None,
    ) -> "Profile":
        return replace(
            self,
            organization_id=organization_id,
            role=role,
            full_name=self.full_name or full_name,
        )
