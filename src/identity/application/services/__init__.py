"""
Identity Application Services
Profile resolution, second factor, audit and invitation orchestration
"""
from identity.application.services.audit_emitter import AuditContext, AuditEmitter
from identity.application.services.invitation_join_flow import InvitationJoinFlow
from identity.application.services.invitation_service import InvitationService
from identity.application.services.profile_resolver import ProfileResolver
from identity.application.services.two_factor_service import TwoFactorService

__all__ = [
    "AuditContext",
    "AuditEmitter",
    "InvitationJoinFlow",
    "InvitationService",
    "ProfileResolver",
    "TwoFactorService",
]
