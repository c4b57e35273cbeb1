"""
Identity Application DTOs
Data Transfer Objects for internal application use
"""
from identity.application.dto.auth_dto import InvitationDetails, SignInResult, TwoFactorEnrollment

__all__ = [
    "InvitationDetails",
    "SignInResult",
    "TwoFactorEnrollment",
]
