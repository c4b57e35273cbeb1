"""Public IP lookup used to stamp audit entries."""
from __future__ import annotations

from typing import Optional

import httpx

from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class IpifyLookupClient:
    """GET {url} -> {"ip": "..."}; any failure yields None."""

    def __init__(
        self,
        url: str = "https://api.ipify.org?format=json",
        *,
        timeout: float = 3.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self) -> Optional[str]:
        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
            ip = response.json().get("ip")
        except httpx.HTTPError as exc:
            logger.warning("Failed to get client IP address", error=str(exc))
            return None
        except ValueError as exc:
            logger.warning("Malformed IP lookup response", error=str(exc))
            return None
        return str(ip) if ip else None

    async def aclose(self) -> None:
        await self.client.aclose()


class StaticIpLookup:
    """Fixed answer; for server-side contexts and tests."""

    def __init__(self, ip: Optional[str] = None) -> None:
        self._ip = ip

    async def lookup(self) -> Optional[str]:
        return self._ip
