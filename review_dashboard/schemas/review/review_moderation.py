"""
Review moderation request and result schemas.
"""

from typing import List, Literal, Optional

from pydantic import Field

from review_dashboard.models.base import ReviewStatus
from review_dashboard.schemas.common.base import BaseCreateSchema, BaseResponseSchema

__all__ = [
    "ApproveRequest",
    "RejectRequest",
    "VisibilityRequest",
    "BulkModerationRequest",
    "ModerationItemResult",
    "BulkModerationResponse",
]


class ApproveRequest(BaseCreateSchema):
    notes: Optional[str] = Field(default=None, max_length=2000)


class RejectRequest(BaseCreateSchema):
    """
    Rejection request.

    ``reason`` is checked by the moderation service so that a missing or
    blank reason surfaces as the same validation error everywhere.
    """

    reason: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class VisibilityRequest(BaseCreateSchema):
    is_public: bool


class BulkModerationRequest(BaseCreateSchema):
    action: Literal["approve", "reject"]
    review_ids: List[int] = Field(..., min_length=1, max_length=100)
    reason: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class ModerationItemResult(BaseResponseSchema):
    """Outcome of one item in a bulk operation."""

    review_id: int
    success: bool
    status: Optional[ReviewStatus] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


class BulkModerationResponse(BaseResponseSchema):
    results: List[ModerationItemResult]
    succeeded: int
    failed: int
