"""
Identity API Client
Async HTTP client for the third-party DNI/RUC lookup provider.
"""

import logging
from typing import Any, Optional

import httpx

from portal.config import settings
from portal.integrations.identity.exceptions import IdentityApiError

logger = logging.getLogger(__name__)


class IdentityApiClient:
    """
    Client for ``{DNI_API_URL}/{dni}`` and ``{RUC_API_URL}/{ruc}``.

    Returns the provider's raw JSON object; shaping it for the frontend is
    left to ``portal.integrations.identity.normalizers``.
    """

    def __init__(
        self,
        dni_url: Optional[str] = None,
        ruc_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.dni_url = (dni_url or settings.dni_api_url).rstrip("/")
        self.ruc_url = (ruc_url or settings.ruc_api_url).rstrip("/")
        self.token = token if token is not None else settings.identity_api_token
        self.timeout = timeout or settings.identity_api_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, url: str, label: str) -> dict[str, Any]:
        """
        GET a provider resource.

        Raises:
            IdentityApiError: On transport failure, non-2xx status or a
                body that is not a JSON object
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, headers=self._headers())
            except httpx.HTTPError as e:
                logger.error(f"{label} lookup request failed: {e}")
                raise IdentityApiError(f"Error de conexión consultando {label}") from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = None

        if not response.is_success:
            upstream_error = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"{label} lookup returned HTTP {response.status_code}")
            raise IdentityApiError(
                message=f"Error consultando {label}: {response.status_code}",
                status_code=response.status_code,
                upstream_error=str(upstream_error) if upstream_error else None,
            )

        if not isinstance(data, dict):
            raise IdentityApiError(
                message=f"Respuesta inválida consultando {label}",
                status_code=response.status_code,
            )

        return data

    async def fetch_dni(self, dni: str) -> dict[str, Any]:
        """Raw provider record for a DNI."""
        return await self._get(f"{self.dni_url}/{dni}", "DNI")

    async def fetch_ruc(self, ruc: str) -> dict[str, Any]:
        """Raw provider record for a RUC."""
        return await self._get(f"{self.ruc_url}/{ruc}", "RUC")


def get_identity_client() -> IdentityApiClient:
    """Dependency returning a client configured from settings."""
    return IdentityApiClient()
