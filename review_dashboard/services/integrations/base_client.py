"""
Shared plumbing for outbound review-source clients.
"""

from typing import Any, Dict, Optional

import httpx

from review_dashboard.core.exceptions import ExternalServiceError
from review_dashboard.core.logging import get_logger

logger = get_logger(__name__)


class BaseIntegrationClient:
    """
    Lazily created ``httpx.AsyncClient`` with a bounded timeout.

    Transport failures, timeouts, error statuses and undecodable bodies all
    surface as ``ExternalServiceError`` so callers handle one exception type.
    """

    service_name = "external"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.http.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning("External request timed out", extra={
                'service_name': self.service_name,
                'path': path,
            })
            raise ExternalServiceError(
                f"{self.service_name} request timed out",
                service_name=self.service_name,
                endpoint=path,
            ) from e
        except httpx.HTTPStatusError as e:
            logger.warning("External request failed", extra={
                'service_name': self.service_name,
                'path': path,
                'status_code': e.response.status_code,
            })
            raise ExternalServiceError(
                f"{self.service_name} returned HTTP {e.response.status_code}",
                service_name=self.service_name,
                endpoint=path,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("External request error", extra={
                'service_name': self.service_name,
                'path': path,
                'error': str(e),
            })
            raise ExternalServiceError(
                f"{self.service_name} request failed: {e}",
                service_name=self.service_name,
                endpoint=path,
            ) from e
        except ValueError as e:
            raise ExternalServiceError(
                f"{self.service_name} returned an invalid response body",
                service_name=self.service_name,
                endpoint=path,
            ) from e

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
