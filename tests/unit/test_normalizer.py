"""Tests for review normalization."""

import json

import pytest

from review_dashboard.core.exceptions import ValidationError
from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.schemas.review import ReviewCategory
from review_dashboard.services.normalization import (
    ANONYMOUS_AUTHOR,
    NormalizationContext,
    ReviewNormalizer,
    derive_rating,
    normalize,
    synthesize_external_id,
)


def hostaway_entry(**overrides) -> dict:
    entry = {
        "id": 7453,
        "type": "host-to-guest",
        "status": "published",
        "rating": None,
        "publicReview": "Shane and family are wonderful! Would definitely host again :)",
        "reviewCategory": [
            {"category": "cleanliness", "rating": 10},
            {"category": "communication", "rating": 10},
            {"category": "respect_house_rules", "rating": 10},
        ],
        "submittedAt": "2020-08-21 22:45:14",
        "guestName": "Shane Finkelstein",
        "listingName": "2B N1 A - 29 Shoreditch Heights",
    }
    entry.update(overrides)
    return entry


def google_entry(**overrides) -> dict:
    entry = {
        "author_name": "Priya Patel",
        "rating": 4,
        "text": "Great location, spotless flat.",
        "time": 1700000000,
        "relative_time_description": "a month ago",
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def context() -> NormalizationContext:
    return NormalizationContext(
        listing_ids_by_hostaway_id={70985: 1},
        listing_ids_by_name={"2b n1 a - 29 shoreditch heights": 1, "camden loft": 2},
        default_listing_id=3,
    )


@pytest.fixture
def normalizer(context: NormalizationContext) -> ReviewNormalizer:
    return ReviewNormalizer(context)


class TestAccounting:
    """Every input entry ends up accepted or rejected."""

    def test_accepted_plus_rejected_equals_input(self, normalizer: ReviewNormalizer):
        payload = [
            hostaway_entry(),
            hostaway_entry(id=7454, publicReview="   "),
            "not an object",
            hostaway_entry(id=7455, listingName="Nowhere Cottage"),
            hostaway_entry(id=7456, type="guest-to-host", rating=4),
        ]
        result = normalizer.normalize("hostaway", payload)

        assert len(result.reviews) == 2
        assert len(result.rejected) == 3
        assert result.total == len(payload)
        assert [r.index for r in result.rejected] == [1, 2, 3]

    def test_rejection_carries_source_and_payload(self, normalizer: ReviewNormalizer):
        bad = hostaway_entry(type="owner-to-guest")
        result = normalizer.normalize("hostaway", [bad])

        rejected = result.rejected[0]
        assert rejected.source == "hostaway"
        assert rejected.payload == bad
        assert "type" in rejected.reason.lower()

    def test_unknown_source_raises(self, normalizer: ReviewNormalizer):
        with pytest.raises(ValidationError):
            normalizer.normalize("airbnb", [])

    def test_unrecognized_envelope_raises(self, normalizer: ReviewNormalizer):
        with pytest.raises(ValidationError):
            normalizer.normalize("hostaway", {"status": "success"})

    def test_hostaway_envelope_is_unwrapped(self, normalizer: ReviewNormalizer):
        result = normalizer.normalize("hostaway", {"status": "success", "result": [hostaway_entry()]})
        assert len(result.reviews) == 1

    def test_google_details_envelope_is_unwrapped(self, normalizer: ReviewNormalizer):
        result = normalizer.normalize("google", {"result": {"reviews": [google_entry()]}})
        assert len(result.reviews) == 1


class TestHostawayMapping:
    """Field mapping for Hostaway entries."""

    def test_fields_are_mapped(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("hostaway", [hostaway_entry()]).reviews[0]

        assert review.source == ReviewSource.HOSTAWAY
        assert review.external_id == "7453"
        assert review.hostaway_id == 7453
        assert review.listing_id == 1
        assert review.type == ReviewType.HOST_TO_GUEST
        assert review.status == ReviewStatus.PENDING
        assert review.author_name == "Shane Finkelstein"
        assert review.submitted_at.year == 2020
        assert review.submitted_at.tzinfo is not None
        assert [c.category for c in review.categories] == [
            "cleanliness",
            "communication",
            "respect_house_rules",
        ]

    def test_missing_rating_is_derived_from_categories(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("hostaway", [hostaway_entry()]).reviews[0]
        assert review.rating == 5

    def test_derivation_can_be_disabled(self, context: NormalizationContext):
        context.derive_rating_from_categories = False
        review = ReviewNormalizer(context).normalize("hostaway", [hostaway_entry()]).reviews[0]
        assert review.rating is None

    def test_explicit_rating_is_kept(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("hostaway", [hostaway_entry(rating=3)]).reviews[0]
        assert review.rating == 3

    def test_out_of_range_rating_is_rejected(self, normalizer: ReviewNormalizer):
        result = normalizer.normalize("hostaway", [hostaway_entry(rating=9)])
        assert result.reviews == []
        assert "scale" in result.rejected[0].reason

    def test_out_of_range_category_is_rejected(self, normalizer: ReviewNormalizer):
        entry = hostaway_entry(reviewCategory=[{"category": "cleanliness", "rating": 11}])
        result = normalizer.normalize("hostaway", [entry])
        assert len(result.rejected) == 1

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_rating_rejects_only_that_entry(self, normalizer: ReviewNormalizer, value):
        payload = json.loads(json.dumps([hostaway_entry(id=1, rating=value), hostaway_entry(id=2, rating=4)]))

        result = normalizer.normalize("hostaway", payload)

        assert [r.external_id for r in result.reviews] == ["2"]
        assert [r.index for r in result.rejected] == [0]
        assert "not a number" in result.rejected[0].reason

    def test_non_finite_category_score_is_rejected(self, normalizer: ReviewNormalizer):
        entry = hostaway_entry(reviewCategory=[{"category": "cleanliness", "rating": float("nan")}])
        result = normalizer.normalize("hostaway", [entry])
        assert len(result.rejected) == 1

    def test_listing_map_id_takes_precedence(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize(
            "hostaway", [hostaway_entry(listingMapId=70985, listingName="Camden Loft")]
        ).reviews[0]
        assert review.listing_id == 1

    def test_listing_name_match_is_case_insensitive(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("hostaway", [hostaway_entry(listingName="  CAMDEN LOFT ")]).reviews[0]
        assert review.listing_id == 2

    def test_missing_guest_name_uses_placeholder(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("hostaway", [hostaway_entry(guestName=None)]).reviews[0]
        assert review.author_name == ANONYMOUS_AUTHOR

    def test_content_is_cleaned_and_truncated(self, context: NormalizationContext):
        context.max_content_length = 10
        review = ReviewNormalizer(context).normalize(
            "hostaway", [hostaway_entry(publicReview="  Lovely\n\n  flat, would stay again ")]
        ).reviews[0]
        assert review.content == "Lovely fla"

    def test_missing_id_is_rejected(self, normalizer: ReviewNormalizer):
        result = normalizer.normalize("hostaway", [hostaway_entry(id=None)])
        assert result.rejected[0].reason == "Review id is required"

    def test_unparseable_date_is_rejected(self, normalizer: ReviewNormalizer):
        result = normalizer.normalize("hostaway", [hostaway_entry(submittedAt="last tuesday-ish")])
        assert len(result.rejected) == 1


class TestGoogleMapping:
    """Field mapping for Google Places reviews."""

    def test_fields_are_mapped(self, normalizer: ReviewNormalizer):
        review = normalizer.normalize("google", [google_entry()]).reviews[0]

        assert review.source == ReviewSource.GOOGLE
        assert review.listing_id == 3
        assert review.type == ReviewType.GUEST_TO_HOST
        assert review.status == ReviewStatus.APPROVED
        assert review.rating == 4
        assert review.categories == []
        assert review.content == "Great location, spotless flat."

    def test_external_id_is_deterministic(self, normalizer: ReviewNormalizer):
        first = normalizer.normalize("google", [google_entry()]).reviews[0]
        second = normalizer.normalize("google", [google_entry(text="Edited text")]).reviews[0]
        assert first.external_id == second.external_id
        assert first.external_id == synthesize_external_id(
            "google", 3, "Priya Patel", first.submitted_at
        )

    def test_different_authors_get_different_ids(self, normalizer: ReviewNormalizer):
        reviews = normalizer.normalize(
            "google", [google_entry(), google_entry(author_name="Tom Baker")]
        ).reviews
        assert reviews[0].external_id != reviews[1].external_id

    def test_without_default_listing_entries_are_rejected(self):
        result = normalize("google", [google_entry()])
        assert result.reviews == []
        assert len(result.rejected) == 1


class TestDeriveRating:

    @pytest.mark.parametrize(
        "scores, expected",
        [
            ([10, 10, 10], 5),
            ([9], 5),
            ([7], 4),
            ([5], 3),
            ([1], 1),
        ],
    )
    def test_category_average_maps_to_five_point_scale(self, scores, expected):
        categories = [ReviewCategory(category=f"c{i}", rating=s) for i, s in enumerate(scores)]
        assert derive_rating(categories) == expected

    def test_no_categories_gives_none(self):
        assert derive_rating([]) is None
