from review_dashboard.schemas.listing.listing import (
    CityCount,
    ListingDetail,
    ListingFilterParams,
    ListingListResponse,
    ListingOverview,
    ListingStatsResponse,
    ListingSummary,
)

__all__ = [
    "CityCount",
    "ListingDetail",
    "ListingFilterParams",
    "ListingListResponse",
    "ListingOverview",
    "ListingStatsResponse",
    "ListingSummary",
]
