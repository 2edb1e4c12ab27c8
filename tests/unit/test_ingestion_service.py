"""Tests for Hostaway ingestion."""

import httpx
import pytest

from review_dashboard.core.cache import CacheManager, InMemoryBackend
from review_dashboard.core.config import DatabaseSettings
from review_dashboard.core.exceptions import DatabaseError
from review_dashboard.models import Listing
from review_dashboard.models.base import ReviewStatus
from review_dashboard.repositories.listing import ListingRepository
from review_dashboard.repositories.review import ReviewRepository
from review_dashboard.services.integrations import HostawayClient
from review_dashboard.services.review import ModerationService, ReviewIngestionService

LISTINGS = [
    {"id": 70985, "name": "2B N1 A - 29 Shoreditch Heights", "city": "London"},
    {"id": 81234, "name": "Camden Loft", "city": "London"},
]

REVIEWS = [
    {
        "id": 7453,
        "type": "host-to-guest",
        "status": "published",
        "rating": None,
        "publicReview": "Shane and family are wonderful! Would definitely host again :)",
        "reviewCategory": [{"category": "cleanliness", "rating": 10}],
        "submittedAt": "2020-08-21 22:45:14",
        "guestName": "Shane Finkelstein",
        "listingName": "2B N1 A - 29 Shoreditch Heights",
    },
    {
        "id": 7454,
        "type": "guest-to-host",
        "rating": 4,
        "publicReview": "Loft was bright and quiet.",
        "submittedAt": "2021-03-02 10:00:00",
        "guestName": "Priya Patel",
        "listingMapId": 81234,
    },
    {
        "id": 7455,
        "type": "guest-to-host",
        "rating": 4,
        "publicReview": "Where was this?",
        "submittedAt": "2021-03-02 10:00:00",
        "listingName": "Unknown Cottage",
    },
]


def hostaway_handler(reviews=REVIEWS, listings=LISTINGS):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/accessTokens"):
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        if path.endswith("/listings"):
            return httpx.Response(200, json={"status": "success", "result": listings})
        return httpx.Response(200, json={"status": "success", "result": reviews})

    return handler


def configured_client(handler) -> HostawayClient:
    return HostawayClient(
        "https://api.hostaway.test/v1",
        account_id="61148",
        api_key="secret",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def cache() -> CacheManager:
    return CacheManager(InMemoryBackend())


def ingestion(session, client, cache=None) -> ReviewIngestionService:
    return ReviewIngestionService(
        session,
        client,
        cache=cache,
        db_settings=DatabaseSettings(DB_RETRY_DELAY=0),
    )


class TestIngestHostaway:

    async def test_stores_accepted_and_reports_rejected(self, session):
        report = await ingestion(session, configured_client(hostaway_handler())).ingest_hostaway()

        assert report.source_available is True
        assert report.ingested == 2
        assert [r.index for r in report.rejected] == [2]
        assert len(report.reviews) == 2
        assert all(r.status == ReviewStatus.PENDING for r in report.reviews)
        assert report.stats.total == 2
        assert report.stats.pending == 2

    async def test_listings_are_synced(self, session):
        await ingestion(session, configured_client(hostaway_handler())).ingest_hostaway()

        loft = await ListingRepository(session).get_by_hostaway_id(81234)
        assert loft is not None
        assert loft.name == "Camden Loft"

    async def test_reingestion_is_idempotent_and_keeps_decisions(self, session, manager):
        client = configured_client(hostaway_handler())
        first = await ingestion(session, client).ingest_hostaway()
        review_id = next(r.id for r in first.reviews if r.external_id == "7453")
        await ModerationService(session).approve(review_id, manager.id)

        second = await ingestion(session, client).ingest_hostaway()

        assert len(second.reviews) == 2
        by_external = {r.external_id: r for r in second.reviews}
        assert by_external["7453"].status == ReviewStatus.APPROVED
        assert by_external["7454"].status == ReviewStatus.PENDING

    async def test_unavailable_source_serves_stored_reviews(self, session, make_review):
        await make_review()

        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        report = await ingestion(session, configured_client(failing)).ingest_hostaway()

        assert report.source_available is False
        assert report.ingested == 0
        assert len(report.reviews) == 1

    async def test_unconfigured_source_is_skipped(self, session):
        client = HostawayClient("https://api.hostaway.test/v1")
        report = await ingestion(session, client).ingest_hostaway()

        assert report.source_available is False
        assert report.reviews == []

    async def test_public_cache_of_touched_listings_is_invalidated(self, session, cache):
        client = configured_client(hostaway_handler())
        await ingestion(session, client).ingest_hostaway()
        loft = await ListingRepository(session).get_by_hostaway_id(81234)
        await cache.set("public_reviews", f"listing_id={loft.id}:limit=10", value="{}")

        await ingestion(session, client, cache=cache).ingest_hostaway()

        assert await cache.get("public_reviews", f"listing_id={loft.id}:limit=10") is None

    async def test_listing_rename_onto_taken_name_is_skipped(self, session, listing):
        hand_made = Listing(name="Camden Loft")
        session.add(hand_made)
        await session.commit()
        # the failed rename rolls the shared session back and expires both rows
        listing_id, hand_made_id = listing.id, hand_made.id
        listings = [
            {"id": 70985, "name": "Camden Loft", "city": "London"},
            {"id": 81234, "name": "Camden Loft", "city": "London"},
        ]

        report = await ingestion(
            session, configured_client(hostaway_handler(listings=listings))
        ).ingest_hostaway()

        assert report.source_available is True
        assert report.ingested == 2
        repo = ListingRepository(session)
        assert (await repo.get_by_id(listing_id, refresh=True)).name == "2B N1 A - 29 Shoreditch Heights"
        assert (await repo.get_by_hostaway_id(81234)).id == hand_made_id

    async def test_store_failure_rejects_only_that_review(self, session, monkeypatch):
        original_upsert = ReviewRepository.upsert

        async def failing_upsert(self, review):
            if review.external_id == "7454":
                raise DatabaseError("Database error: disk full", operation="upsert review")
            return await original_upsert(self, review)

        monkeypatch.setattr(ReviewRepository, "upsert", failing_upsert)

        report = await ingestion(session, configured_client(hostaway_handler())).ingest_hostaway()

        assert report.ingested == 1
        assert [r.external_id for r in report.reviews] == ["7453"]
        assert [r.index for r in report.rejected] == [1, 2]
        assert "disk full" in report.rejected[0].reason
        assert report.rejected[0].payload["externalId"] == "7454"
