"""
Google Places client: text search and place details with reviews.
"""

from typing import Any, Dict, List, Optional

import httpx

from review_dashboard.core.config import IntegrationSettings
from review_dashboard.core.exceptions import ExternalServiceError
from review_dashboard.core.logging import get_logger
from review_dashboard.schemas.review import GooglePlaceSummary
from review_dashboard.services.integrations.base_client import BaseIntegrationClient

logger = get_logger(__name__)

DETAILS_FIELDS = "place_id,name,formatted_address,rating,user_ratings_total,reviews"
ACCEPTED_STATUSES = ("OK", "ZERO_RESULTS")


class GooglePlacesClient(BaseIntegrationClient):
    service_name = "google_places"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key

    @classmethod
    def from_settings(cls, integration_settings: IntegrationSettings, **kwargs) -> "GooglePlacesClient":
        return cls(
            integration_settings.GOOGLE_PLACES_BASE_URL,
            api_key=integration_settings.GOOGLE_PLACES_API_KEY,
            timeout=integration_settings.EXTERNAL_REQUEST_TIMEOUT,
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _places_get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise ExternalServiceError(
                "Google Places API key is not configured",
                service_name=self.service_name,
                endpoint=path,
                status_code=503,
            )
        data = await self._request("GET", path, params={**params, "key": self.api_key})
        status = data.get("status")
        if status not in ACCEPTED_STATUSES:
            raise ExternalServiceError(
                f"Google Places API error: {status}",
                service_name=self.service_name,
                endpoint=path,
            )
        return data

    async def search_places(self, query: str) -> List[GooglePlaceSummary]:
        data = await self._places_get("/textsearch/json", {"query": query})
        places = [
            GooglePlaceSummary.model_validate(place)
            for place in data.get("results") or []
            if place.get("place_id")
        ]
        logger.info("Google place search completed", extra={'count': len(places)})
        return places

    async def get_place_details(self, place_id: str) -> Dict[str, Any]:
        """
        Place details including up to five reviews.

        Returns:
            The ``result`` object, empty when Google has no such place
        """
        data = await self._places_get(
            "/details/json",
            {"place_id": place_id, "fields": DETAILS_FIELDS},
        )
        return data.get("result") or {}
