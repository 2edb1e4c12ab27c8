"""Tests for the review store."""

from datetime import timedelta

import pytest

from review_dashboard.models import Listing
from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.repositories.review import ReviewRepository, clamp_public_limit
from review_dashboard.schemas.review import NormalizedReview, ReviewCategory, ReviewFilterParams
from review_dashboard.utils.datetime_utils import DateTimeHelper


def normalized(listing_id: int, **overrides) -> NormalizedReview:
    data = dict(
        source=ReviewSource.HOSTAWAY,
        external_id="7453",
        hostaway_id=7453,
        listing_id=listing_id,
        type=ReviewType.HOST_TO_GUEST,
        status=ReviewStatus.PENDING,
        rating=5,
        content="Shane and family are wonderful!",
        categories=[ReviewCategory(category="cleanliness", rating=10)],
        author_name="Shane Finkelstein",
        submitted_at=DateTimeHelper.now() - timedelta(days=3),
    )
    data.update(overrides)
    return NormalizedReview(**data)


class TestClampPublicLimit:

    @pytest.mark.parametrize("limit, expected", [(None, 50), (0, 1), (-5, 1), (10, 10), (50, 50), (500, 50)])
    def test_clamps_into_range(self, limit, expected):
        assert clamp_public_limit(limit) == expected


class TestUpsert:

    async def test_insert_then_update_keeps_one_row(self, session, listing):
        repo = ReviewRepository(session)
        first = await repo.upsert(normalized(listing.id))
        await repo.commit()
        second = await repo.upsert(normalized(listing.id, content="Updated text"))
        await repo.commit()

        assert first.id == second.id
        assert await repo.count() == 1
        stored = await repo.get_by_id(first.id, refresh=True)
        assert stored.content == "Updated text"

    async def test_update_preserves_moderation_decision(self, session, listing, manager):
        repo = ReviewRepository(session)
        stored = await repo.upsert(normalized(listing.id))
        await repo.commit()
        await repo.transition(
            stored.id,
            ReviewStatus.PENDING,
            {"status": ReviewStatus.APPROVED, "approved_by": manager.id, "approved_at": DateTimeHelper.now()},
        )
        await repo.set_visibility(stored.id, True)
        await repo.commit()

        await repo.upsert(normalized(listing.id, rating=4))
        await repo.commit()

        stored = await repo.get_by_id(stored.id, refresh=True)
        assert stored.status == ReviewStatus.APPROVED
        assert stored.is_public is True
        assert stored.approved_by == manager.id
        assert stored.rating == 4

    async def test_source_is_part_of_the_key(self, session, listing):
        repo = ReviewRepository(session)
        await repo.upsert(normalized(listing.id))
        await repo.upsert(normalized(listing.id, source=ReviewSource.GOOGLE, hostaway_id=None))
        await repo.commit()
        assert await repo.count() == 2

    async def test_approved_insert_is_not_public(self, session, listing):
        repo = ReviewRepository(session)
        stored = await repo.upsert(
            normalized(listing.id, source=ReviewSource.GOOGLE, status=ReviewStatus.APPROVED)
        )
        await repo.commit()
        assert stored.status == ReviewStatus.APPROVED
        assert stored.approved_at is not None
        assert stored.approved_by is None
        assert stored.is_public is False


class TestQueries:

    async def test_public_query_returns_only_approved_public(self, session, make_review, listing):
        visible = await make_review(status=ReviewStatus.APPROVED, is_public=True)
        await make_review(status=ReviewStatus.APPROVED, is_public=False)
        await make_review(status=ReviewStatus.PENDING)
        await make_review(status=ReviewStatus.REJECTED)

        rows = await ReviewRepository(session).get_public(listing.id, 10)
        assert [r.id for r in rows] == [visible.id]

    async def test_public_query_is_newest_first_and_limited(self, session, make_review, listing):
        now = DateTimeHelper.now()
        old = await make_review(status=ReviewStatus.APPROVED, is_public=True, submitted_at=now - timedelta(days=30))
        new = await make_review(status=ReviewStatus.APPROVED, is_public=True, submitted_at=now - timedelta(days=1))
        await make_review(status=ReviewStatus.APPROVED, is_public=True, submitted_at=now - timedelta(days=60))

        rows = await ReviewRepository(session).get_public(listing.id, 2)
        assert [r.id for r in rows] == [new.id, old.id]

    async def test_search_filters_and_counts(self, session, make_review):
        await make_review(rating=5)
        await make_review(rating=2)
        await make_review(rating=4, status=ReviewStatus.APPROVED)

        rows, total = await ReviewRepository(session).search(
            ReviewFilterParams(min_rating=4, limit=1)
        )
        assert total == 2
        assert len(rows) == 1

    async def test_search_matches_content_and_author(self, session, make_review):
        target = await make_review(content="Hot tub was 100% amazing")
        await make_review(content="Quiet street")

        rows, total = await ReviewRepository(session).search(ReviewFilterParams(search="100%"))
        assert total == 1
        assert rows[0].id == target.id

    async def test_search_sorts_by_rating(self, session, make_review):
        low = await make_review(rating=1)
        high = await make_review(rating=5)

        rows, _ = await ReviewRepository(session).search(
            ReviewFilterParams(sort_by="rating", sort_order="asc")
        )
        assert [r.id for r in rows] == [low.id, high.id]

    async def test_get_by_listing_scopes_and_defaults_to_newest(self, session, make_review, listing):
        loft = Listing(name="Camden Loft")
        session.add(loft)
        await session.commit()
        now = DateTimeHelper.now()
        older = await make_review(submitted_at=now - timedelta(days=9))
        newer = await make_review(submitted_at=now - timedelta(days=2))
        await make_review(listing_id=loft.id)

        rows = await ReviewRepository(session).get_by_listing(listing.id)
        assert [r.id for r in rows] == [newer.id, older.id]

        approved = await ReviewRepository(session).get_by_listing(
            listing.id, ReviewFilterParams(status=ReviewStatus.APPROVED)
        )
        assert approved == []

    async def test_get_by_ids(self, session, make_review):
        first = await make_review()
        second = await make_review()

        rows = await ReviewRepository(session).get_by_ids([second.id, first.id, 999])
        assert {r.id for r in rows} == {first.id, second.id}
        assert await ReviewRepository(session).get_by_ids([]) == []


class TestConditionalWrites:

    async def test_transition_requires_expected_status(self, session, make_review):
        review = await make_review(status=ReviewStatus.REJECTED)
        repo = ReviewRepository(session)

        updated = await repo.transition(review.id, ReviewStatus.PENDING, {"status": ReviewStatus.APPROVED})
        await repo.commit()

        assert updated is False
        assert (await repo.get_by_id(review.id, refresh=True)).status == ReviewStatus.REJECTED

    async def test_visibility_requires_approval(self, session, make_review):
        review = await make_review(status=ReviewStatus.PENDING)
        assert await ReviewRepository(session).set_visibility(review.id, True) is False


class TestConcurrentInsert:

    async def test_duplicate_key_on_insert_is_retried_as_update(self, session, listing, monkeypatch):
        repo = ReviewRepository(session)
        first_id = (await repo.upsert(normalized(listing.id))).id
        await repo.commit()

        original_lookup = ReviewRepository.get_by_external_id
        calls = {"n": 0}

        # the first lookup misses the row another writer already inserted
        async def stale_lookup(self, source, external_id, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await original_lookup(self, source, external_id, **kwargs)

        monkeypatch.setattr(ReviewRepository, "get_by_external_id", stale_lookup)

        stored = await repo.upsert(normalized(listing.id, content="Updated text"))
        await repo.commit()

        assert calls["n"] == 2
        assert stored.id == first_id
        assert stored.content == "Updated text"
        assert await repo.count() == 1
