"""Identity Domain Protocols"""
from identity.domain.protocols.audit_log_repository_protocol import IAuditLogRepository
from identity.domain.protocols.data_store_protocol import IIdentityDataStore
from identity.domain.protocols.gateway_protocols import IInvitationGateway, IIpLookup
from identity.domain.protocols.identity_provider_protocol import IIdentityProvider, SessionListener
from identity.domain.protocols.invitation_repository_protocol import IInvitationRepository
from identity.domain.protocols.organization_repository_protocol import IOrganizationRepository
from identity.domain.protocols.profile_repository_protocol import IProfileRepository

__all__ = [
    "IAuditLogRepository",
    "IIdentityDataStore",
    "IIdentityProvider",
    "IInvitationGateway",
    "IInvitationRepository",
    "IIpLookup",
    "IOrganizationRepository",
    "IProfileRepository",
    "SessionListener",
]
