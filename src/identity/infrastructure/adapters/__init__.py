"""Identity Infrastructure - External Adapters"""
from identity.infrastructure.adapters.gotrue_identity_provider import GoTrueIdentityProvider
from identity.infrastructure.adapters.invitation_gateway import HttpInvitationGateway
from identity.infrastructure.adapters.ip_lookup_client import IpifyLookupClient, StaticIpLookup
from identity.infrastructure.adapters.memory_identity_provider import InMemoryIdentityProvider
from identity.infrastructure.adapters.password_service import PasswordService
from identity.infrastructure.adapters.totp_service import TotpService

__all__ = [
    "GoTrueIdentityProvider",
    "HttpInvitationGateway",
    "InMemoryIdentityProvider",
    "IpifyLookupClient",
    "PasswordService",
    "StaticIpLookup",
    "TotpService",
]
