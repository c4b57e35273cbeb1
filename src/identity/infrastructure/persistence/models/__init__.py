"""
Identity Infrastructure - ORM Models
SQLAlchemy models for the identity tables
"""
from identity.infrastructure.persistence.models.audit_log_model import AuditLogModel
from identity.infrastructure.persistence.models.invitation_model import InvitationModel
from identity.infrastructure.persistence.models.organization_model import OrganizationModel
from identity.infrastructure.persistence.models.profile_model import ProfileModel

__all__ = [
    "AuditLogModel",
    "InvitationModel",
    "OrganizationModel",
    "ProfileModel",
]
