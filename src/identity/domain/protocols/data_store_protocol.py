"""
Backing data store: the set of repositories the identity core reads and writes.
"""
from __future__ import annotations

from typing import Protocol

from identity.domain.protocols.audit_log_repository_protocol import IAuditLogRepository
from identity.domain.protocols.invitation_repository_protocol import IInvitationRepository
from identity.domain.protocols.organization_repository_protocol import IOrganizationRepository
from identity.domain.protocols.profile_repository_protocol import IProfileRepository


class IIdentityDataStore(Protocol):
    @property
    def profiles(self) -> IProfileRepository: ...

    @property
    def organizations(self) -> IOrganizationRepository: ...

    @property
    def audit_logs(self) -> IAuditLogRepository: ...

    @property
    def invitations(self) -> IInvitationRepository: ...
