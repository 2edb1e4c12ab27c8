"""
Review schemas package.
"""

from review_dashboard.schemas.review.review_base import NormalizedReview, ReviewCategory
from review_dashboard.schemas.review.review_filters import ReviewFilterParams
from review_dashboard.schemas.review.review_moderation import (
    ApproveRequest,
    BulkModerationRequest,
    BulkModerationResponse,
    ModerationItemResult,
    RejectRequest,
    VisibilityRequest,
)
from review_dashboard.schemas.review.review_response import (
    HostawayIngestionData,
    HostawayIngestionResult,
    PublicReviewsResponse,
    PublicReview,
    PublicReviewList,
    ReviewListResponse,
    ReviewResponse,
    ReviewStats,
    ReviewTypeBreakdown,
)
from review_dashboard.schemas.review.review_sources import (
    GooglePlaceSummary,
    GoogleRawReview,
    HostawayRawCategory,
    HostawayRawReview,
    RawReviewEntry,
    RejectedEntry,
    raw_review_adapter,
)

__all__ = [
    "HostawayIngestionData",
    "HostawayIngestionResult",
    "PublicReviewsResponse",
    "NormalizedReview",
    "ReviewCategory",
    "ReviewFilterParams",
    "ApproveRequest",
    "BulkModerationRequest",
    "BulkModerationResponse",
    "ModerationItemResult",
    "RejectRequest",
    "VisibilityRequest",
    "PublicReview",
    "PublicReviewList",
    "ReviewListResponse",
    "ReviewResponse",
    "ReviewStats",
    "ReviewTypeBreakdown",
    "GooglePlaceSummary",
    "GoogleRawReview",
    "HostawayRawCategory",
    "HostawayRawReview",
    "RawReviewEntry",
    "RejectedEntry",
    "raw_review_adapter",
]
