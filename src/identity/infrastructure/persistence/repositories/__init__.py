"""Identity Infrastructure - Repositories"""
from identity.infrastructure.persistence.repositories.audit_log_repository import AuditLogRepository
from identity.infrastructure.persistence.repositories.invitation_repository import (
    InvitationRepository,
)
from identity.infrastructure.persistence.repositories.organization_repository import (
    OrganizationRepository,
)
from identity.infrastructure.persistence.repositories.profile_repository import ProfileRepository

__all__ = [
    "AuditLogRepository",
    "InvitationRepository",
    "OrganizationRepository",
    "ProfileRepository",
]
