"""
Review filter and pagination parameters for the dashboard listing.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from review_dashboard.models.base import ReviewStatus, ReviewType
from review_dashboard.schemas.common.base import BaseFilterSchema
from review_dashboard.utils.datetime_utils import DateTimeHelper

__all__ = ["ReviewFilterParams"]


class ReviewFilterParams(BaseFilterSchema):
    """
    Filtering, sorting and pagination for manager review queries.

    Ratings are on the canonical 1-5 scale; dates compare against
    ``submitted_at``.
    """

    status: Optional[ReviewStatus] = Field(default=None)
    type: Optional[ReviewType] = Field(default=None)
    min_rating: Optional[int] = Field(default=None, ge=1, le=5)
    max_rating: Optional[int] = Field(default=None, ge=1, le=5)
    date_from: Optional[datetime] = Field(default=None)
    date_to: Optional[datetime] = Field(default=None)
    search: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Case-insensitive match on content or author name",
    )

    sort_by: str = Field(
        default="submittedAt",
        pattern=r"^(submittedAt|rating|authorName)$",
    )
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")
    page: int = Field(default=1, ge=1)
    # dashboard routes cap this further at ModerationSettings.DASHBOARD_MAX_PAGE_SIZE
    limit: int = Field(default=20, ge=1, le=1000)

    @field_validator("date_from", "date_to")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return DateTimeHelper.ensure_utc(v) if v is not None else v

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def validate_ranges(self):
        if (
            self.min_rating is not None
            and self.max_rating is not None
            and self.min_rating > self.max_rating
        ):
            raise ValueError("minRating must not exceed maxRating")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("dateFrom must not be after dateTo")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
