"""HTTP client for the privileged accept-invitation operation."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from identity.domain.entities.organization import OrganizationSummary
from identity.domain.exception import (
    ERROR_TYPES_BY_CODE,
    AccountLocked,
    BackendUnavailable,
    IdentityProviderError,
    InvitationInvalid,
)
from shared.exceptions import DomainError
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class HttpInvitationGateway:
    """
    POST {functions_url}/accept-invitation with the caller's bearer token.

    Error responses use the problem shape {"code", "message", "details"};
    known codes are raised as the matching domain error so callers see
    the same exceptions locally and over the wire.
    """

    def __init__(
        self,
        functions_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = functions_url.rstrip("/")
        self._api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def accept_invitation(self, code: str, access_token: str) -> OrganizationSummary:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
        try:
            response = await self.client.post(
                f"{self.base_url}/accept-invitation",
                headers=headers,
                json={"invitationCode": code},
            )
        except httpx.TimeoutException as exc:
            logger.error("Invitation service timeout")
            raise BackendUnavailable("Invitation service timed out") from exc
        except httpx.TransportError as exc:
            logger.error("Invitation service unreachable", error=str(exc))
            raise BackendUnavailable("Invitation service unreachable") from exc

        if response.status_code >= 400:
            raise self._error_from(response)

        data = response.json()
        organization = data.get("organization") or {}
        if not data.get("success") or not organization.get("id"):
            raise IdentityProviderError("Unexpected invitation response")
        return OrganizationSummary(id=str(organization["id"]), name=str(organization.get("name", "")))

    @staticmethod
    def _error_from(response: httpx.Response) -> DomainError:
        try:
            payload: Dict[str, Any] = response.json()
        except ValueError:
            payload = {}
        code = payload.get("code")
        message = payload.get("message") or payload.get("error") or ""
        details = payload.get("details")
        logger.info("Invitation rejected", status_code=response.status_code, code=code)

        error_type = ERROR_TYPES_BY_CODE.get(code or "")
        if error_type is AccountLocked:
            return AccountLocked()
        if error_type is not None:
            return error_type(message, details=details)
        if response.status_code == 404:
            return InvitationInvalid(message)
        if response.status_code >= 500:
            return BackendUnavailable(message or f"Invitation service error ({response.status_code})")
        return DomainError(message, code=code or "invitation_error", status_code=response.status_code, details=details)
