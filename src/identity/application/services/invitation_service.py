"""
Invitation Service - privileged, server side
Issues invitation codes and performs the one-time pending -> accepted transition.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from identity.domain.entities.audit_log import AuditAction, AuditLogEntry, AuditResource
from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.organization import OrganizationSummary
from identity.domain.exception import (
    InvitationAlreadyUsed,
    InvitationEmailMismatch,
    InvitationExpired,
    InvitationInvalid,
    PermissionDenied,
)
from identity.domain.protocols import IIdentityDataStore
from identity.domain.services.permission_evaluator import has_permission
from identity.domain.value_objects.permission import Permission
from identity.domain.value_objects.role import Role
from shared.exceptions import ConflictError, NotFoundError, ValidationError
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]

INVITABLE_ROLES = (Role.USER, Role.MANAGER, Role.ADMIN)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvitationService:
    """
    Runs with full data-layer access behind the invitation endpoints.

    Acceptance is decided by a conditional update on the invitation row,
    committed together with the redeemer's profile joining the
    organization: of two concurrent redeemers exactly one sees the pending
    row flip, the other gets InvitationAlreadyUsed and nothing is written
    for it.
    """

    def __init__(
        self,
        store: IIdentityDataStore,
        *,
        default_ttl: timedelta = timedelta(days=7),
        clock: Clock = _utcnow,
    ) -> None:
        self._store = store
        self._default_ttl = default_ttl
        self._clock = clock

    async def accept(self, code: str, identity: Identity) -> OrganizationSummary:
        if not code or not code.strip():
            raise ValidationError("Invitation code is required")
        code = code.strip()

        invitation = await self._store.invitations.get_by_code(code)
        if invitation is None:
            raise InvitationInvalid()
        self._ensure_pending(invitation)

        now = self._clock()
        if invitation.is_expired(now):
            await self._store.invitations.mark_expired(code)
            logger.info("Invitation expired on redemption", invitation_id=invitation.id)
            raise InvitationExpired()

        if not invitation.matches_email(identity.email):
            logger.warning(
                "Invitation email mismatch",
                invitation_id=invitation.id,
                identity_id=identity.id,
            )
            raise InvitationEmailMismatch()

        organization = await self._store.organizations.get_by_id(invitation.organization_id)
        if organization is None:
            raise InvitationInvalid("Organization not found")

        result = await self._store.invitations.accept(code, identity=identity, accepted_at=now)
        if result is None:
            # Lost the race, or the row changed since it was read.
            latest = await self._store.invitations.get_by_code(code)
            if latest is not None and latest.status == InvitationStatus.EXPIRED:
                raise InvitationExpired()
            raise InvitationAlreadyUsed()

        accepted, profile = result
        await self._audit(
            identity.id,
            organization.id,
            AuditAction.INVITATION_ACCEPTED,
            accepted.id,
            {"invitation_code": code, "role": accepted.role.value},
        )
        logger.info(
            "Invitation accepted",
            invitation_id=accepted.id,
            identity_id=identity.id,
            organization_id=organization.id,
            role=profile.role.value,
        )
        return organization.summary()

    async def create(
        self,
        inviter: Identity,
        *,
        organization_id: str,
        email: str,
        role: Role = Role.USER,
        expires_in_days: Optional[int] = None,
    ) -> Invitation:
        profile = await self._store.profiles.get_by_identity_id(inviter.id)
        if profile is None:
            raise NotFoundError("User profile not found", code="profile_not_found")
        if not has_permission(profile, Permission.USERS_CREATE):
            raise PermissionDenied("Insufficient permissions to create invitations")
        if profile.organization_id != organization_id:
            raise PermissionDenied("You can only invite users to your own organization")
        if role not in INVITABLE_ROLES:
            raise ValidationError(f"Role {role.value} cannot be granted by invitation")
        if expires_in_days is not None and expires_in_days <= 0:
            raise ValidationError("expiresInDays must be positive")

        organization = await self._store.organizations.get_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        normalized = email.strip().lower()
        existing = await self._store.invitations.find_pending(organization_id, normalized)
        if existing is not None:
            raise ConflictError(
                "An invitation has already been sent to this email address",
                details={"invitation_id": existing.id},
            )
        member = await self._store.profiles.get_by_email(normalized)
        if member is not None and member.organization_id == organization_id:
            raise ConflictError("User is already a member of this organization")

        ttl = timedelta(days=expires_in_days) if expires_in_days else self._default_ttl
        invitation = await self._store.invitations.add(
            Invitation.issue(
                organization_id=organization_id,
                invited_email=normalized,
                role=role,
                expires_in=ttl,
                invited_by=inviter.id,
                now=self._clock(),
            )
        )
        await self._audit(
            inviter.id,
            organization_id,
            AuditAction.INVITATION_CREATED,
            invitation.id,
            {"invited_email": normalized, "role": role.value},
        )
        logger.info("Invitation created", invitation_id=invitation.id, organization_id=organization_id)
        return invitation

    @staticmethod
    def _ensure_pending(invitation: Invitation) -> None:
        if invitation.status == InvitationStatus.ACCEPTED:
            raise InvitationAlreadyUsed()
        if invitation.status == InvitationStatus.EXPIRED:
            raise InvitationExpired()

    async def _audit(
        self,
        user_id: str,
        organization_id: str,
        action: str,
        invitation_id: str,
        details: Mapping[str, Any],
    ) -> None:
        try:
            await self._store.audit_logs.add(
                AuditLogEntry(
                    organization_id=organization_id,
                    action=action,
                    user_id=user_id,
                    resource_type=AuditResource.INVITATION,
                    resource_id=invitation_id,
                    details=dict(details),
                )
            )
        except Exception as exc:
            logger.error("Error logging audit event", action=action, error=str(exc))
