"""
Listing schemas for the manager dashboard.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from review_dashboard.schemas.common.base import BaseFilterSchema, BaseResponseSchema
from review_dashboard.schemas.review import ReviewResponse, ReviewStats
from review_dashboard.utils.datetime_utils import DateTimeHelper

__all__ = [
    "ListingFilterParams",
    "ListingSummary",
    "ListingListResponse",
    "ListingDetail",
    "CityCount",
    "ListingOverview",
    "ListingStatsResponse",
]


class ListingFilterParams(BaseFilterSchema):
    search: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Case-insensitive match on name or address",
    )
    city: Optional[str] = Field(default=None, max_length=100)
    sort_by: str = Field(
        default="name",
        pattern=r"^(name|city|createdAt|reviewCount|averageRating)$",
    )
    sort_order: str = Field(default="asc", pattern=r"^(asc|desc)$")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=1000)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ListingSummary(BaseResponseSchema):
    """Listing with review counters over every stored review."""

    id: int
    name: str
    hostaway_listing_id: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    review_count: int = 0
    pending_count: int = 0
    public_count: int = 0
    average_rating: float = 0.0
    created_at: datetime


class ListingListResponse(BaseResponseSchema):
    listings: List[ListingSummary]
    total: int
    page: int
    limit: int
    total_pages: int


class ListingDetail(BaseResponseSchema):
    listing: ListingSummary
    stats: ReviewStats
    reviews: Optional[List[ReviewResponse]] = Field(
        default=None, description="Newest reviews, when requested"
    )


class CityCount(BaseResponseSchema):
    city: Optional[str] = None
    count: int


class ListingOverview(BaseResponseSchema):
    total_listings: int = 0
    listings_with_reviews: int = 0
    listings_with_public_reviews: int = 0


class ListingStatsResponse(BaseResponseSchema):
    """Portfolio-wide aggregates for the dashboard header."""

    overview: ListingOverview
    reviews: ReviewStats
    by_city: List[CityCount] = Field(default_factory=list)
    top_rated: List[ListingSummary] = Field(
        default_factory=list, description="Highest average approved rating first"
    )
    last_updated: datetime = Field(default_factory=DateTimeHelper.now)
