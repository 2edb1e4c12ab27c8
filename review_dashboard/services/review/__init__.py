"""
Review use-cases: ingestion, moderation and the public read path.
"""

from review_dashboard.services.review.ingestion_service import IngestionReport, ReviewIngestionService
from review_dashboard.services.review.moderation_service import ModerationService
from review_dashboard.services.review.public_review_service import (
    PUBLIC_REVIEWS_ROUTE,
    PublicReviewService,
    invalidate_public_reviews,
    public_reviews_cache_pattern,
    resolve_public_limit,
)

__all__ = [
    "IngestionReport",
    "ReviewIngestionService",
    "ModerationService",
    "PUBLIC_REVIEWS_ROUTE",
    "PublicReviewService",
    "invalidate_public_reviews",
    "public_reviews_cache_pattern",
    "resolve_public_limit",
]
