"""
Manager listing endpoints: the property list with review counters,
portfolio stats and a per-listing breakdown.
"""

import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import ValidationError as PydanticValidationError

from review_dashboard.api.deps import CurrentManagerDep, RegistryDep, SessionDep
from review_dashboard.core.exceptions import ListingNotFoundError, create_validation_error
from review_dashboard.repositories.listing import ListingRepository
from review_dashboard.repositories.review import ReviewRepository
from review_dashboard.schemas.common import SuccessResponse
from review_dashboard.schemas.listing import (
    CityCount,
    ListingDetail,
    ListingFilterParams,
    ListingListResponse,
    ListingOverview,
    ListingStatsResponse,
    ListingSummary,
)
from review_dashboard.schemas.review import ReviewResponse
from review_dashboard.services.normalization import calculate_review_stats

router = APIRouter(prefix="/listings", tags=["listings"])

TOP_LISTINGS = 10


def get_listing_filters(
    registry: RegistryDep,
    search: Optional[str] = Query(default=None),
    city: Optional[str] = Query(default=None),
    sort_by: str = Query(default="name", alias="sortBy"),
    sort_order: str = Query(default="asc", alias="sortOrder"),
    page: int = Query(default=1),
    limit: int = Query(default=20),
) -> ListingFilterParams:
    max_page_size = registry.settings.moderation.DASHBOARD_MAX_PAGE_SIZE
    if limit > max_page_size:
        raise create_validation_error({"limit": [f"Limit must be at most {max_page_size}"]})
    try:
        return ListingFilterParams(
            search=search,
            city=city,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except PydanticValidationError as e:
        field_errors = {}
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "query"
            field_errors.setdefault(location, []).append(error.get("msg", "Invalid value"))
        raise create_validation_error(field_errors) from e


ListingFiltersDep = Annotated[ListingFilterParams, Depends(get_listing_filters)]


@router.get("", response_model=SuccessResponse[ListingListResponse])
async def list_listings(manager: CurrentManagerDep, session: SessionDep, filters: ListingFiltersDep):
    summaries, total = await ListingRepository(session).search(filters)
    return SuccessResponse.create(
        data=ListingListResponse(
            listings=[ListingSummary.model_validate(s) for s in summaries],
            total=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=math.ceil(total / filters.limit) if total else 0,
        )
    )


# registered ahead of /{listing_id}
@router.get("/stats", response_model=SuccessResponse[ListingStatsResponse])
async def get_listing_stats(manager: CurrentManagerDep, session: SessionDep):
    """Portfolio totals, listings per city and the best rated listings."""
    listings = ListingRepository(session)
    overview = ListingOverview(
        total_listings=await listings.count(),
        listings_with_reviews=await listings.count_with_reviews(),
        listings_with_public_reviews=await listings.count_with_reviews(public_only=True),
    )
    return SuccessResponse.create(
        data=ListingStatsResponse(
            overview=overview,
            reviews=calculate_review_stats(await ReviewRepository(session).list_all()),
            by_city=[CityCount(city=city, count=count) for city, count in await listings.count_by_city(TOP_LISTINGS)],
            top_rated=[ListingSummary.model_validate(s) for s in await listings.get_top_rated(TOP_LISTINGS)],
        )
    )


@router.get("/{listing_id}", response_model=SuccessResponse[ListingDetail])
async def get_listing(
    manager: CurrentManagerDep,
    session: SessionDep,
    listing_id: int = Path(..., ge=1),
    include_reviews: bool = Query(default=False, alias="includeReviews"),
    reviews_limit: int = Query(default=10, ge=1, le=50, alias="reviewsLimit"),
):
    """One listing with review stats and, optionally, its newest reviews."""
    summary = await ListingRepository(session).get_summary(listing_id)
    if summary is None:
        raise ListingNotFoundError(listing_id)

    reviews = await ReviewRepository(session).list_all(listing_id=listing_id)
    return SuccessResponse.create(
        data=ListingDetail(
            listing=ListingSummary.model_validate(summary),
            stats=calculate_review_stats(reviews),
            reviews=[ReviewResponse.model_validate(r) for r in reviews[:reviews_limit]] if include_reviews else None,
        )
    )
