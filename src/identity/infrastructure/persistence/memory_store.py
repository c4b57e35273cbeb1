"""
In-memory identity data store.

Dict-backed repositories for local development and tests. Conditional
invitation transitions run under an asyncio.Lock, mirroring the
``UPDATE ... WHERE status = 'pending'`` of the SQL store. Acceptance
writes the profile before flipping the invitation, so a failed profile
write leaves the invitation pending.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from identity.domain.entities.audit_log import AuditLogEntry
from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.organization import Organization
from identity.domain.entities.profile import Profile
from shared.exceptions import ConflictError, NotFoundError


class InMemoryProfileRepository:
    def __init__(self) -> None:
        self._by_identity: dict[str, Profile] = {}

    async def get_by_identity_id(self, identity_id: str) -> Optional[Profile]:
        return self._by_identity.get(identity_id)

    async def get_by_email(self, email: str) -> Optional[Profile]:
        key = email.strip().lower()
        for profile in self._by_identity.values():
            if profile.email.lower() == key:
                return profile
        return None

    async def add(self, profile: Profile) -> Profile:
        if profile.identity_id in self._by_identity:
            raise ConflictError(f"Profile already exists for identity {profile.identity_id}")
        stored = replace(profile, email=profile.email.lower())
        self._by_identity[profile.identity_id] = stored
        return stored

    async def update(self, profile: Profile) -> Profile:
        if profile.identity_id not in self._by_identity:
            raise NotFoundError(f"Profile not found for identity {profile.identity_id}", code="profile_not_found")
        self._by_identity[profile.identity_id] = profile
        return profile


class InMemoryOrganizationRepository:
    def __init__(self) -> None:
        self._items: dict[str, Organization] = {}

    async def get_by_id(self, organization_id: str) -> Optional[Organization]:
        return self._items.get(organization_id)

    async def add(self, organization: Organization) -> Organization:
        self._items[organization.id] = organization
        return organization


class InMemoryAuditLogRepository:
    def __init__(self) -> None:
        self.entries: list[AuditLogEntry] = []

    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.entries.append(entry)
        return entry

    async def find_by_organization(
        self,
        organization_id: str,
        limit: int = 100,
        action: Optional[str] = None,
    ) -> Sequence[AuditLogEntry]:
        matches = [
            e for e in reversed(self.entries)
            if e.organization_id == organization_id and (action is None or e.action == action)
        ]
        return matches[:limit]


class InMemoryInvitationRepository:
    def __init__(self, profiles: InMemoryProfileRepository) -> None:
        self._profiles = profiles
        self._by_code: dict[str, Invitation] = {}
        self._lock = asyncio.Lock()

    async def get_by_code(self, code: str) -> Optional[Invitation]:
        return self._by_code.get(code)

    async def find_pending(self, organization_id: str, email: str) -> Optional[Invitation]:
        key = email.strip().lower()
        for invitation in self._by_code.values():
            if (
                invitation.organization_id == organization_id
                and invitation.invited_email == key
                and invitation.status == InvitationStatus.PENDING
            ):
                return invitation
        return None

    async def add(self, invitation: Invitation) -> Invitation:
        if invitation.code in self._by_code:
            raise ConflictError("Invitation code already exists")
        self._by_code[invitation.code] = invitation
        return invitation

    async def accept(
        self,
        code: str,
        *,
        identity: Identity,
        accepted_at: datetime,
    ) -> Optional[tuple[Invitation, Profile]]:
        async with self._lock:
            current = self._by_code.get(code)
            if current is None or current.status != InvitationStatus.PENDING:
                return None
            existing = await self._profiles.get_by_identity_id(identity.id)
            joined = current.membership_for(identity, existing)
            if existing is None:
                profile = await self._profiles.add(joined)
            else:
                profile = await self._profiles.update(joined)
            updated = current.accept(identity.id, accepted_at)
            self._by_code[code] = updated
            return updated, profile

    async def mark_expired(self, code: str) -> bool:
        async with self._lock:
            current = self._by_code.get(code)
            if current is None or current.status != InvitationStatus.PENDING:
                return False
            self._by_code[code] = current.expire()
            return True


class InMemoryIdentityDataStore:
    def __init__(self) -> None:
        self.profiles = InMemoryProfileRepository()
        self.organizations = InMemoryOrganizationRepository()
        self.audit_logs = InMemoryAuditLogRepository()
        self.invitations = InMemoryInvitationRepository(self.profiles)
