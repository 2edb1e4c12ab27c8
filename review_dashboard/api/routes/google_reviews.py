"""
Google Places feasibility check.

Fetches a place and its reviews and runs them through the normalizer
without storing anything. Without an API key it describes what the
integration would need instead.
"""

from typing import Optional

from fastapi import APIRouter, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from review_dashboard.api.deps import RegistryDep
from review_dashboard.core.exceptions import ExternalServiceError
from review_dashboard.core.logging import get_logger
from review_dashboard.models.base import ReviewSource
from review_dashboard.services.normalization import NormalizationContext, ReviewNormalizer

logger = get_logger(__name__)

router = APIRouter(prefix="/google-reviews", tags=["google"])

REQUIREMENTS = [
    "Google Cloud project with the Places API enabled",
    "API key with Places API access",
    "Billing account (the Places API is not free)",
]
LIMITATIONS = [
    "At most the five most recent reviews per place",
    "No category breakdowns",
    "Request quotas and rate limits apply",
    "The property must be listed on Google Maps",
]
COST_CONSIDERATIONS = [
    "Every Places request is billed",
    "Details requests cost more than text searches",
    "Responses should be cached to limit API calls",
]
RECOMMENDATIONS = [
    "Verify the Google Places API key is valid",
    "Ensure the Places API is enabled for the project",
    "Check the billing account is set up",
    "Verify API quotas are not exceeded",
]


@router.get("/test")
async def test_google_reviews(
    registry: RegistryDep,
    query: Optional[str] = Query(default=None),
    listing_id: Optional[int] = Query(default=None, alias="listingId", ge=1),
):
    client = registry.google_client
    integrations = registry.settings.integrations

    if not client.is_configured:
        return JSONResponse(content={
            "success": False,
            "message": "Google Places API key not configured",
            "findings": {
                "feasibility": "POSSIBLE",
                "requirements": REQUIREMENTS,
                "limitations": LIMITATIONS,
                "costConsiderations": COST_CONSIDERATIONS,
            },
        })

    search_query = query or integrations.GOOGLE_DEFAULT_QUERY
    try:
        places = await client.search_places(search_query)
        if not places:
            return JSONResponse(content={
                "success": True,
                "message": "No places found for the given query",
                "data": {"place": None, "reviews": [], "rejected": []},
            })
        details = await client.get_place_details(places[0].place_id)
    except ExternalServiceError as e:
        logger.warning("Google reviews check failed", extra={
            'query': search_query,
            'error': e.message,
        })
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "success": False,
                "message": e.message,
                "findings": {
                    "feasibility": "POSSIBLE",
                    "error": "Integration failed due to configuration or API issues",
                    "recommendations": RECOMMENDATIONS,
                },
            },
        )

    context = NormalizationContext.from_settings(
        registry.settings.moderation,
        default_listing_id=listing_id or integrations.GOOGLE_DEFAULT_LISTING_ID,
    )
    result = ReviewNormalizer(context).normalize(ReviewSource.GOOGLE.value, details.get("reviews") or [])

    return JSONResponse(content=jsonable_encoder({
        "success": True,
        "data": {
            "place": {
                "id": details.get("place_id", places[0].place_id),
                "name": details.get("name"),
                "address": details.get("formatted_address"),
                "rating": details.get("rating"),
                "totalReviews": details.get("user_ratings_total"),
            },
            "reviews": [r.model_dump(by_alias=True) for r in result.reviews],
            "rejected": [r.model_dump(by_alias=True) for r in result.rejected],
        },
        "findings": {
            "feasibility": "POSSIBLE",
            "implementation": "SUCCESSFUL",
        },
    }))
