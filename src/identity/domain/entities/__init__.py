"""Identity Domain Entities"""
from identity.domain.entities.audit_log import AuditAction, AuditLogEntry, AuditResource
from identity.domain.entities.identity import Identity, Session
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.organization import (
    AccessControlSettings,
    Department,
    Organization,
    OrganizationSummary,
)
from identity.domain.entities.profile import Profile

__all__ = [
    "AccessControlSettings",
    "AuditAction",
    "AuditLogEntry",
    "AuditResource",
    "Department",
    "Identity",
    "Invitation",
    "InvitationStatus",
    "Organization",
    "OrganizationSummary",
    "Profile",
    "Session",
]
