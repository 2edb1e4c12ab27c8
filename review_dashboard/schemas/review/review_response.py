"""
Review response schemas for the manager dashboard and the public widget.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.schemas.common.base import BaseResponseSchema, BaseSchema
from review_dashboard.schemas.common.response import SuccessResponse
from review_dashboard.schemas.review.review_base import ReviewCategory
from review_dashboard.schemas.review.review_sources import RejectedEntry
from review_dashboard.utils.datetime_utils import DateTimeHelper

__all__ = [
    "ReviewResponse",
    "ReviewListResponse",
    "PublicReview",
    "PublicReviewList",
    "ReviewTypeBreakdown",
    "ReviewStats",
    "HostawayIngestionData",
    "HostawayIngestionResult",
    "PublicReviewsResponse",
]


class ReviewResponse(BaseResponseSchema):
    """Full review including moderation audit fields (manager view)."""

    id: int
    source: ReviewSource
    external_id: str
    hostaway_id: Optional[int] = None
    listing_id: int
    type: ReviewType
    status: ReviewStatus
    rating: Optional[int] = None
    content: str
    categories: List[ReviewCategory] = Field(default_factory=list)
    author_name: str
    author_email: Optional[str] = None
    submitted_at: datetime

    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    is_public: bool = False

    created_at: datetime
    updated_at: datetime

    @field_validator(
        "submitted_at", "approved_at", "rejected_at", "created_at", "updated_at"
    )
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return DateTimeHelper.ensure_utc(v) if v is not None else v


class ReviewListResponse(BaseResponseSchema):
    reviews: List[ReviewResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class PublicReview(BaseResponseSchema):
    """
    External-facing review.

    Only display fields: no ids, moderation audit data or author email.
    """

    author_name: str
    rating: Optional[int] = None
    content: str
    categories: List[ReviewCategory] = Field(default_factory=list)
    submitted_at: datetime
    source: ReviewSource

    @field_validator("submitted_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return DateTimeHelper.ensure_utc(v)


class PublicReviewList(BaseResponseSchema):
    reviews: List[PublicReview]
    listing_id: int
    count: int
    limit: int


class ReviewTypeBreakdown(BaseSchema):
    host_to_guest: int = 0
    guest_to_host: int = 0


class ReviewStats(BaseResponseSchema):
    """Aggregate counters shown on the dashboard."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    average_rating: float = 0.0
    this_week: int = Field(default=0, description="Reviews submitted in the last 7 days")
    by_type: ReviewTypeBreakdown = Field(default_factory=ReviewTypeBreakdown)
    by_rating: Dict[str, int] = Field(
        default_factory=lambda: {str(star): 0 for star in range(1, 6)}
    )
    recent_activity: int = Field(default=0, description="Reviews submitted in the last 30 days")


class HostawayIngestionData(BaseResponseSchema):
    """Reviews and stats returned by the Hostaway ingestion route."""

    reviews: List[ReviewResponse]
    stats: ReviewStats
    rejected: List[RejectedEntry] = Field(default_factory=list)
    ingested: int = 0
    source_available: bool = False


class HostawayIngestionResult(BaseResponseSchema):
    data: HostawayIngestionData


class PublicReviewsResponse(SuccessResponse[PublicReviewList]):
    last_updated: datetime = Field(default_factory=DateTimeHelper.now)
