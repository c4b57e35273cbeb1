"""
Identity Domain Exceptions

Every identity error is a DomainError so the API layer renders it with the
shared problem shape ({"code", "message", "details"}).
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import status

from shared.exceptions import DomainError


class IdentityDomainException(DomainError):
    """Base exception for identity domain"""


class NotAuthenticated(IdentityDomainException):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(IdentityDomainException):
    """Raised when credentials are invalid"""

    code = "invalid_credentials"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccountLocked(IdentityDomainException):
    """Raised when account is locked due to failed attempts"""

    code = "account_locked"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, unlock_at: Optional[datetime] = None) -> None:
        self.unlock_at = unlock_at
        message = "Account is locked"
        details = None
        if unlock_at:
            message = f"Account is locked until {unlock_at.isoformat()}"
            details = {"unlock_at": unlock_at.isoformat()}
        super().__init__(message, details=details)


class PermissionDenied(IdentityDomainException):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ProfileNotFoundTransient(IdentityDomainException):
    """Profile row not visible yet; expected right after signup."""

    code = "profile_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, identity_id: str) -> None:
        self.identity_id = identity_id
        super().__init__(f"Profile not found for identity {identity_id}")


class ProfileUnavailableTerminal(IdentityDomainException):
    """Retries exhausted; account setup still in progress."""

    code = "profile_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class TwoFactorRequired(IdentityDomainException):
    code = "two_factor_required"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidTwoFactorCode(IdentityDomainException):
    code = "invalid_two_factor_code"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvitationInvalid(IdentityDomainException):
    code = "invitation_invalid"
    status_code = status.HTTP_404_NOT_FOUND


class InvitationExpired(IdentityDomainException):
    code = "invitation_expired"
    status_code = status.HTTP_400_BAD_REQUEST


class InvitationAlreadyUsed(IdentityDomainException):
    code = "invitation_already_used"
    status_code = status.HTTP_409_CONFLICT


class InvitationEmailMismatch(IdentityDomainException):
    code = "invitation_email_mismatch"
    status_code = status.HTTP_403_FORBIDDEN


class BackendUnavailable(IdentityDomainException):
    code = "backend_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class IdentityProviderError(IdentityDomainException):
    """Provider answered with something other than a credential failure."""

    code = "identity_provider_error"
    status_code = status.HTTP_502_BAD_GATEWAY


# code -> class, used by clients that receive the problem shape over HTTP
ERROR_TYPES_BY_CODE: dict[str, type[IdentityDomainException]] = {
    cls.code: cls
    for cls in (
        InvalidCredentials,
        AccountLocked,
        PermissionDenied,
        TwoFactorRequired,
        InvalidTwoFactorCode,
        InvitationInvalid,
        InvitationExpired,
        InvitationAlreadyUsed,
        InvitationEmailMismatch,
        BackendUnavailable,
        IdentityProviderError,
    )
}
ERROR_TYPES_BY_CODE["unauthorized"] = NotAuthenticated
