"""
Canonical review schemas shared by ingestion and moderation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.schemas.common.base import BaseSchema
from review_dashboard.utils.datetime_utils import DateTimeHelper

__all__ = [
    "ReviewCategory",
    "NormalizedReview",
]


class ReviewCategory(BaseSchema):
    """One category score, e.g. cleanliness: 10."""

    category: str = Field(..., min_length=1, max_length=100)
    rating: int = Field(..., ge=1, le=10, description="Category score (1-10)")


class NormalizedReview(BaseSchema):
    """
    Source-independent review produced by normalization.

    This is the only shape the review store accepts for upserts.
    """

    source: ReviewSource
    external_id: str = Field(..., min_length=1, max_length=128)
    hostaway_id: Optional[int] = None
    listing_id: int = Field(..., ge=1)
    type: ReviewType
    status: ReviewStatus = ReviewStatus.PENDING
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    content: str = Field(..., min_length=1)
    categories: List[ReviewCategory] = Field(default_factory=list)
    author_name: str = Field(..., min_length=1, max_length=255)
    author_email: Optional[str] = Field(default=None, max_length=255)
    submitted_at: datetime

    @field_validator("submitted_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return DateTimeHelper.ensure_utc(v)

    @property
    def idempotency_key(self) -> Tuple[str, str]:
        return (self.source.value, self.external_id)

    def content_values(self) -> Dict[str, Any]:
        """Column values that ingestion may refresh on an existing row"""
        return {
            "hostaway_id": self.hostaway_id,
            "listing_id": self.listing_id,
            "type": self.type,
            "rating": self.rating,
            "content": self.content,
            "categories": [c.model_dump() for c in self.categories],
            "author_name": self.author_name,
            "author_email": self.author_email,
            "submitted_at": self.submitted_at,
        }
