"""
Hostaway API client.

Client-credentials authentication against ``/accessTokens`` with the token
cached until five minutes before it expires.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from review_dashboard.core.config import IntegrationSettings
from review_dashboard.core.exceptions import ExternalServiceError
from review_dashboard.core.logging import get_logger
from review_dashboard.services.integrations.base_client import BaseIntegrationClient

logger = get_logger(__name__)

TOKEN_REFRESH_MARGIN = 300
DEFAULT_TOKEN_LIFETIME = 3600


class HostawayClient(BaseIntegrationClient):
    service_name = "hostaway"

    def __init__(
        self,
        base_url: str,
        account_id: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.account_id = account_id
        self.api_key = api_key
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls, integration_settings: IntegrationSettings, **kwargs) -> "HostawayClient":
        return cls(
            integration_settings.HOSTAWAY_BASE_URL,
            account_id=integration_settings.HOSTAWAY_ACCOUNT_ID,
            api_key=integration_settings.HOSTAWAY_API_KEY,
            timeout=integration_settings.EXTERNAL_REQUEST_TIMEOUT,
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_id and self.api_key)

    async def get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        if not self.is_configured:
            raise ExternalServiceError(
                "Hostaway credentials are not configured",
                service_name=self.service_name,
                endpoint="/accessTokens",
                status_code=503,
            )

        data = await self._request(
            "POST",
            "/accessTokens",
            data={
                "grant_type": "client_credentials",
                "client_id": self.account_id,
                "client_secret": self.api_key,
                "scope": "general",
            },
            headers={"Cache-control": "no-cache"},
        )
        token = data.get("access_token")
        if not token:
            raise ExternalServiceError(
                "Hostaway token response has no access_token",
                service_name=self.service_name,
                endpoint="/accessTokens",
            )

        expires_in = int(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        self._access_token = token
        self._token_expires_at = time.monotonic() + max(0, expires_in - TOKEN_REFRESH_MARGIN)
        logger.info("Hostaway access token obtained", extra={'expires_in': expires_in})
        return token

    async def _authorized_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self.get_access_token()
        return await self._request(
            "GET",
            path,
            params=params,
            headers={"Authorization": f"Bearer {token}", "Cache-control": "no-cache"},
        )

    async def fetch_reviews(self) -> Dict[str, Any]:
        """Raw ``/reviews`` body (``{"status": ..., "result": [...]}``)"""
        body = await self._authorized_get("/reviews")
        logger.info("Fetched Hostaway reviews", extra={
            'count': len(body.get("result") or []),
        })
        return body

    async def fetch_listings(self) -> List[Dict[str, Any]]:
        body = await self._authorized_get("/listings")
        listings = body.get("result") or []
        logger.info("Fetched Hostaway listings", extra={'count': len(listings)})
        return listings
