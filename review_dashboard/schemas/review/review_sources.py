"""
Raw provider payload schemas.

Each review source has its own variant; entries are tagged with ``source``
and validated through a discriminated union before normalization.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from review_dashboard.schemas.common.base import BaseSchema

__all__ = [
    "HostawayRawCategory",
    "HostawayRawReview",
    "GoogleRawReview",
    "RawReviewEntry",
    "raw_review_adapter",
    "RejectedEntry",
    "GooglePlaceSummary",
]


class RawEntrySchema(BaseModel):
    """Lenient base: unknown provider fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class HostawayRawCategory(RawEntrySchema):
    category: Optional[str] = None
    rating: Optional[float] = None


class HostawayRawReview(RawEntrySchema):
    """Review object as returned by the Hostaway ``/reviews`` endpoint."""

    model_config = ConfigDict(alias_generator=to_camel)

    source: Literal["hostaway"] = "hostaway"
    id: Optional[int] = None
    type: Optional[str] = None
    status: Optional[str] = None
    rating: Optional[float] = None
    public_review: Optional[str] = None
    review_category: Optional[List[HostawayRawCategory]] = None
    submitted_at: Optional[Union[str, int, float]] = None
    guest_name: Optional[str] = None
    listing_name: Optional[str] = None
    listing_map_id: Optional[int] = None


class GoogleRawReview(RawEntrySchema):
    """Review object from Google Places details (``result.reviews[]``)."""

    source: Literal["google"] = "google"
    author_name: Optional[str] = None
    author_url: Optional[str] = None
    profile_photo_url: Optional[str] = None
    rating: Optional[float] = None
    text: Optional[str] = None
    time: Optional[int] = None
    relative_time_description: Optional[str] = None
    language: Optional[str] = None


RawReviewEntry = Annotated[
    Union[HostawayRawReview, GoogleRawReview],
    Field(discriminator="source"),
]

raw_review_adapter: TypeAdapter = TypeAdapter(RawReviewEntry)


class RejectedEntry(BaseSchema):
    """Raw entry that failed normalization, with the reason."""

    index: int = Field(..., ge=0, description="Position in the input batch")
    source: str
    reason: str
    payload: Any = None


class GooglePlaceSummary(BaseSchema):
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
