"""
Two-Factor Service
Enrollment, login verification and removal of the TOTP second factor.
"""
from __future__ import annotations

from typing import Optional

from identity.application.dto.auth_dto import TwoFactorEnrollment
from identity.application.services.audit_emitter import AuditEmitter
from identity.domain.entities.audit_log import AuditAction
from identity.domain.entities.identity import Identity
from identity.domain.entities.profile import Profile
from identity.domain.exception import (
    InvalidCredentials,
    InvalidTwoFactorCode,
    ProfileUnavailableTerminal,
    TwoFactorRequired,
)
from identity.domain.protocols import IIdentityDataStore, IIdentityProvider
from identity.infrastructure.adapters.totp_service import TotpService, hash_backup_code
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class TwoFactorService:
    """
    Second-factor lifecycle for a single client context.

    Enrollment material from setup() lives only in memory until enable()
    confirms a code generated from it. Backup codes are persisted as
    digests and each one works once.
    """

    def __init__(
        self,
        store: IIdentityDataStore,
        provider: IIdentityProvider,
        audit: AuditEmitter,
        totp: TotpService,
        *,
        backup_code_count: int = 10,
    ) -> None:
        self._store = store
        self._provider = provider
        self._audit = audit
        self._totp = totp
        self._backup_code_count = backup_code_count
        self._pending: dict[str, TwoFactorEnrollment] = {}

    async def setup(self, identity: Identity) -> TwoFactorEnrollment:
        secret = self._totp.generate_secret()
        enrollment = TwoFactorEnrollment(
            secret=secret,
            enrollment_uri=self._totp.provisioning_uri(secret, identity.email),
            backup_codes=self._totp.generate_backup_codes(self._backup_code_count),
        )
        self._pending[identity.id] = enrollment
        logger.info("Two-factor setup started", identity_id=identity.id)
        return enrollment

    def pending_enrollment(self, identity_id: str) -> Optional[TwoFactorEnrollment]:
        return self._pending.get(identity_id)

    async def enable(self, identity: Identity, code: str) -> tuple[str, ...]:
        """
        Confirm the pending enrollment with a code from the authenticator.

        Returns the plaintext backup codes. Nothing is persisted on failure.
        """
        enrollment = self._pending.get(identity.id)
        if enrollment is None:
            raise TwoFactorRequired("No two-factor setup in progress")
        if not self._totp.verify(enrollment.secret, code):
            raise InvalidTwoFactorCode()

        profile = await self._load_profile(identity.id)
        updated = profile.enable_two_factor(
            enrollment.secret,
            tuple(hash_backup_code(c) for c in enrollment.backup_codes),
        )
        await self._store.profiles.update(updated)
        del self._pending[identity.id]

        self._audit.log_auth(
            AuditAction.TWO_FACTOR_ENABLED,
            user_id=identity.id,
            organization_id=profile.organization_id,
        )
        logger.info("Two-factor enabled", identity_id=identity.id)
        return enrollment.backup_codes

    def check_code(self, profile: Profile, code: str) -> Optional[str]:
        """
        Validate a login code against the profile.

        Returns the matched backup-code digest, or None when a TOTP code
        matched. Raises InvalidTwoFactorCode otherwise.
        """
        if not profile.two_factor_enabled or not profile.two_factor_secret:
            raise TwoFactorRequired("Two-factor authentication is not enabled")
        if self._totp.verify(profile.two_factor_secret, code):
            return None
        digest = hash_backup_code(code)
        if digest in profile.backup_codes:
            return digest
        raise InvalidTwoFactorCode()

    async def verify_at_login(self, profile: Profile, code: str) -> Profile:
        digest = self.check_code(profile, code)
        if digest is None:
            return profile

        # Backup code: consume before the caller proceeds.
        current = await self._store.profiles.get_by_identity_id(profile.identity_id) or profile
        if digest not in current.backup_codes:
            raise InvalidTwoFactorCode()
        updated = await self._store.profiles.update(current.without_backup_code(digest))
        self._audit.log_auth(
            AuditAction.BACKUP_CODE_USED,
            user_id=profile.identity_id,
            organization_id=profile.organization_id,
            details={"remaining": len(updated.backup_codes)},
        )
        logger.info(
            "Backup code consumed",
            identity_id=profile.identity_id,
            remaining=len(updated.backup_codes),
        )
        return updated

    async def disable(self, identity: Identity, password: str) -> Profile:
        """Re-authenticate with the password, then clear the factor."""
        try:
            await self._provider.sign_in_with_password(identity.email, password)
        except InvalidCredentials:
            logger.warning("Two-factor disable rejected: re-authentication failed", identity_id=identity.id)
            raise

        profile = await self._load_profile(identity.id)
        updated = await self._store.profiles.update(profile.disable_two_factor())
        self._pending.pop(identity.id, None)

        self._audit.log_auth(
            AuditAction.TWO_FACTOR_DISABLED,
            user_id=identity.id,
            organization_id=profile.organization_id,
        )
        logger.info("Two-factor disabled", identity_id=identity.id)
        return updated

    async def _load_profile(self, identity_id: str) -> Profile:
        profile = await self._store.profiles.get_by_identity_id(identity_id)
        if profile is None:
            raise ProfileUnavailableTerminal()
        return profile
