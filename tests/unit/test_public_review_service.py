"""Tests for the public review read path."""

import pytest

from review_dashboard.core.config import ModerationSettings
from review_dashboard.core.exceptions import ListingNotFoundError
from review_dashboard.models.base import ReviewStatus
from review_dashboard.services.review import PublicReviewService, resolve_public_limit


class TestResolvePublicLimit:

    @pytest.mark.parametrize("limit, expected", [(None, 10), (0, 1), (25, 25), (1000, 50)])
    def test_defaults_and_clamps(self, limit, expected):
        assert resolve_public_limit(limit, ModerationSettings()) == expected

    def test_configured_maximum_cannot_exceed_fifty(self):
        settings = ModerationSettings(PUBLIC_REVIEWS_MAX_LIMIT=500)
        assert resolve_public_limit(400, settings) == 50


class TestGetPublicReviews:

    async def test_only_display_fields_are_exposed(self, session, make_review, listing):
        await make_review(status=ReviewStatus.APPROVED, is_public=True, notes="internal note")

        result = await PublicReviewService(session).get_public_reviews(listing.id)

        assert result.count == 1
        payload = result.model_dump(by_alias=True)["reviews"][0]
        assert "notes" not in payload
        assert "status" not in payload
        assert "approvedBy" not in payload
        assert payload["authorName"] == "Shane Finkelstein"

    async def test_limit_is_clamped(self, session, make_review, listing):
        for _ in range(3):
            await make_review(status=ReviewStatus.APPROVED, is_public=True)

        result = await PublicReviewService(session).get_public_reviews(listing.id, limit=0)

        assert result.limit == 1
        assert result.count == 1

    async def test_unknown_listing(self, session):
        with pytest.raises(ListingNotFoundError):
            await PublicReviewService(session).get_public_reviews(404)
