"""
Unauthenticated public review endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Path, Query, Request

from review_dashboard.api.deps import PublicReviewServiceDep
from review_dashboard.api.route_wrapper import cached_endpoint, cors_preflight
from review_dashboard.core.config import Settings
from review_dashboard.schemas.review import PublicReviewsResponse
from review_dashboard.services.review import PUBLIC_REVIEWS_ROUTE, resolve_public_limit

router = APIRouter(prefix="/reviews/public", tags=["public"])

PUBLIC_REVIEWS_PATH = "/{listing_id}"


def _cache_ttl(settings: Settings) -> int:
    return settings.cache.PUBLIC_REVIEWS_CACHE_TTL


def _cache_limit(limit: Optional[int], settings: Settings) -> int:
    return resolve_public_limit(limit, settings.moderation)


@router.get(PUBLIC_REVIEWS_PATH, response_model=PublicReviewsResponse)
@cached_endpoint(
    PUBLIC_REVIEWS_ROUTE,
    rate_limit="public_reviews",
    cache_ttl=_cache_ttl,
    key_params=("listing_id", "limit"),
    normalizers={"limit": _cache_limit},
    cors=True,
)
async def get_public_reviews(
    request: Request,
    service: PublicReviewServiceDep,
    listing_id: int = Path(..., ge=1),
    limit: Optional[int] = Query(default=None, description="Clamped to 1-50"),
):
    """Approved, public reviews of a listing for the guest-facing site."""
    data = await service.get_public_reviews(listing_id, limit)
    return PublicReviewsResponse(data=data)


router.add_api_route(
    PUBLIC_REVIEWS_PATH,
    cors_preflight(),
    methods=["OPTIONS"],
    include_in_schema=False,
)
