"""
Review normalization.

Converts provider payloads (Hostaway, Google Places) into the canonical
``NormalizedReview`` shape. Normalization is a pure transform: listing
lookups come in through ``NormalizationContext`` and every input entry ends
up either in ``reviews`` or in ``rejected``.
"""

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from review_dashboard.core.config import ModerationSettings
from review_dashboard.core.exceptions import ValidationError
from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.schemas.review import (
    GoogleRawReview,
    HostawayRawReview,
    NormalizedReview,
    RejectedEntry,
    ReviewCategory,
    raw_review_adapter,
)
from review_dashboard.utils.datetime_utils import DateTimeHelper
from review_dashboard.utils.string_utils import StringHelper

ANONYMOUS_AUTHOR = "Anonymous Guest"

RATING_SCALE = (1, 5)
CATEGORY_SCALE = (1, 10)


class EntryRejected(ValueError):
    """A single raw entry cannot be normalized"""


@dataclass
class NormalizationContext:
    """
    Lookups and policy for one normalization run.

    Attributes:
        listing_ids_by_hostaway_id: Hostaway listing id -> internal listing id
        listing_ids_by_name: lowercased listing name -> internal listing id
        default_listing_id: listing that sources without listing data attach to
        derive_rating_from_categories: fill a missing overall rating from
            the category average
        max_content_length: content is truncated to this many characters
    """
    listing_ids_by_hostaway_id: Dict[int, int] = field(default_factory=dict)
    listing_ids_by_name: Dict[str, int] = field(default_factory=dict)
    default_listing_id: Optional[int] = None
    derive_rating_from_categories: bool = True
    max_content_length: int = 1000

    @classmethod
    def from_settings(cls, moderation_settings: ModerationSettings, **lookups) -> "NormalizationContext":
        return cls(
            derive_rating_from_categories=moderation_settings.DERIVE_RATING_FROM_CATEGORIES,
            max_content_length=moderation_settings.MAX_CONTENT_LENGTH,
            **lookups,
        )

    def resolve_listing(self, hostaway_listing_id: Optional[int], listing_name: Optional[str]) -> Optional[int]:
        if hostaway_listing_id is not None and hostaway_listing_id in self.listing_ids_by_hostaway_id:
            return self.listing_ids_by_hostaway_id[hostaway_listing_id]
        if listing_name:
            return self.listing_ids_by_name.get(listing_name.strip().lower())
        return None


@dataclass
class NormalizationResult:
    reviews: List[NormalizedReview] = field(default_factory=list)
    rejected: List[RejectedEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.reviews) + len(self.rejected)


def synthesize_external_id(
    source: str,
    listing_id: int,
    author_name: str,
    submitted_at: datetime
) -> str:
    """Deterministic id for sources that do not expose one"""
    fingerprint = "|".join([
        source,
        str(listing_id),
        author_name,
        DateTimeHelper.ensure_utc(submitted_at).isoformat(),
    ])
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:32]


def derive_rating(categories: List[ReviewCategory]) -> Optional[int]:
    """Category average (1-10) mapped onto the 1-5 scale"""
    if not categories:
        return None
    average = sum(c.rating for c in categories) / len(categories)
    low, high = RATING_SCALE
    # half up
    return max(low, min(high, int(average / 10 * 5 + 0.5)))


class ReviewNormalizer:
    """Maps raw provider entries onto ``NormalizedReview``"""

    SOURCES = tuple(source.value for source in ReviewSource)

    def __init__(self, context: Optional[NormalizationContext] = None):
        self.context = context or NormalizationContext()

    def normalize(
        self,
        source: str,
        raw_payload: Any,
        context: Optional[NormalizationContext] = None
    ) -> NormalizationResult:
        """
        Normalize a batch of raw entries from one source.

        Args:
            source: Source name (``hostaway`` or ``google``)
            raw_payload: List of entries or a provider response envelope
            context: Overrides the normalizer's default context

        Returns:
            NormalizationResult with one item per input entry across
            ``reviews`` and ``rejected``

        Raises:
            ValidationError: If the source is unknown or the payload has no
                recognizable list of entries
        """
        if source not in self.SOURCES:
            raise ValidationError(
                f"Unknown review source: {source}",
                field_errors={"source": [f"Must be one of {', '.join(self.SOURCES)}"]},
            )

        ctx = context or self.context
        entries = self._extract_entries(raw_payload)
        result = NormalizationResult()

        for index, entry in enumerate(entries):
            try:
                raw = self._parse_entry(source, entry)
                if isinstance(raw, HostawayRawReview):
                    review = self._normalize_hostaway(raw, ctx)
                else:
                    review = self._normalize_google(raw, ctx)
            except (EntryRejected, PydanticValidationError) as e:
                result.rejected.append(
                    RejectedEntry(index=index, source=source, reason=self._reason(e), payload=entry)
                )
                continue
            result.reviews.append(review)

        return result

    # ==================== Envelope & Parsing ====================

    @staticmethod
    def _extract_entries(raw_payload: Any) -> List[Any]:
        """Accept a plain list, a Hostaway body or a Google details body"""
        if isinstance(raw_payload, list):
            return raw_payload
        if isinstance(raw_payload, dict):
            result = raw_payload.get("result")
            if isinstance(result, list):
                return result
            if isinstance(result, dict) and isinstance(result.get("reviews"), list):
                return result["reviews"]
            if isinstance(raw_payload.get("reviews"), list):
                return raw_payload["reviews"]
        raise ValidationError(
            "Unrecognized review payload",
            field_errors={"payload": ["Expected a list of reviews or a provider response"]},
        )

    @staticmethod
    def _parse_entry(source: str, entry: Any):
        if not isinstance(entry, dict):
            raise EntryRejected("Entry is not an object")
        return raw_review_adapter.validate_python({**entry, "source": source})

    @staticmethod
    def _reason(exc: Exception) -> str:
        if isinstance(exc, PydanticValidationError):
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            return f"Invalid field {location}: {first.get('msg')}"
        return str(exc)

    # ==================== Field Helpers ====================

    @staticmethod
    def _content(text: Optional[str], max_length: int) -> str:
        content = StringHelper.truncate(StringHelper.clean_whitespace(text or ""), max_length)
        if not content:
            raise EntryRejected("Review content is empty")
        return content

    @staticmethod
    def _author(name: Optional[str]) -> str:
        return StringHelper.truncate(StringHelper.clean_whitespace(name or ""), 255) or ANONYMOUS_AUTHOR

    @staticmethod
    def _submitted_at(value: Any) -> datetime:
        if value is None or value == "":
            raise EntryRejected("Submission date is required")
        try:
            return DateTimeHelper.parse_datetime(value)
        except (ValueError, OverflowError, OSError) as e:
            raise EntryRejected(f"Invalid submission date: {value}") from e

    @staticmethod
    def _scaled(value: Optional[float], scale: tuple, label: str) -> Optional[int]:
        if value is None:
            return None
        low, high = scale
        if not math.isfinite(value):
            raise EntryRejected(f"{label} is not a number")
        if value < low or value > high:
            raise EntryRejected(f"{label} {value:g} is outside the {low}-{high} scale")
        return int(value + 0.5)

    # ==================== Source Mappings ====================

    def _normalize_hostaway(self, raw: HostawayRawReview, ctx: NormalizationContext) -> NormalizedReview:
        if raw.id is None:
            raise EntryRejected("Review id is required")

        valid_types = [t.value for t in ReviewType]
        if raw.type not in valid_types:
            raise EntryRejected(f"Review type must be one of {', '.join(valid_types)}")

        categories = []
        for raw_category in raw.review_category or []:
            name = StringHelper.category_key(raw_category.category or "")
            if not name:
                raise EntryRejected("Category name is required")
            score = self._scaled(raw_category.rating, CATEGORY_SCALE, f"Category {name} score")
            if score is None:
                raise EntryRejected(f"Category {name} has no score")
            categories.append(ReviewCategory(category=name, rating=score))

        rating = self._scaled(raw.rating, RATING_SCALE, "Rating")
        if rating is None and ctx.derive_rating_from_categories:
            rating = derive_rating(categories)

        listing_id = ctx.resolve_listing(raw.listing_map_id, raw.listing_name)
        if listing_id is None:
            raise EntryRejected(
                f"Unknown listing: {raw.listing_name or raw.listing_map_id or 'missing'}"
            )

        return NormalizedReview(
            source=ReviewSource.HOSTAWAY,
            external_id=str(raw.id),
            hostaway_id=raw.id,
            listing_id=listing_id,
            type=ReviewType(raw.type),
            status=ReviewStatus.PENDING,
            rating=rating,
            content=self._content(raw.public_review, ctx.max_content_length),
            categories=categories,
            author_name=self._author(raw.guest_name),
            submitted_at=self._submitted_at(raw.submitted_at),
        )

    def _normalize_google(self, raw: GoogleRawReview, ctx: NormalizationContext) -> NormalizedReview:
        if ctx.default_listing_id is None:
            raise EntryRejected("No listing configured for Google reviews")

        content = self._content(raw.text, ctx.max_content_length)
        submitted_at = self._submitted_at(raw.time)
        author_name = self._author(raw.author_name)

        return NormalizedReview(
            source=ReviewSource.GOOGLE,
            external_id=synthesize_external_id(
                ReviewSource.GOOGLE.value, ctx.default_listing_id, author_name, submitted_at
            ),
            listing_id=ctx.default_listing_id,
            type=ReviewType.GUEST_TO_HOST,
            # Google only exposes reviews that are already public
            status=ReviewStatus.APPROVED,
            rating=self._scaled(raw.rating, RATING_SCALE, "Rating"),
            content=content,
            categories=[],
            author_name=author_name,
            submitted_at=submitted_at,
        )


def normalize(
    source: str,
    raw_payload: Any,
    context: Optional[NormalizationContext] = None
) -> NormalizationResult:
    """Module-level shortcut for ``ReviewNormalizer().normalize``"""
    return ReviewNormalizer(context).normalize(source, raw_payload)
