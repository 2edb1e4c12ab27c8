"""Tests for the Google Places check and health endpoints."""

import httpx

from review_dashboard.repositories.review import ReviewRepository
from review_dashboard.services.integrations import GooglePlacesClient


def google_client(handler) -> GooglePlacesClient:
    return GooglePlacesClient(
        "https://maps.test/api/place", api_key="gkey", transport=httpx.MockTransport(handler)
    )


class TestGoogleReviewsCheck:

    async def test_without_key_describes_requirements(self, client: httpx.AsyncClient):
        response = await client.get("/api/google-reviews/test")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["findings"]["feasibility"] == "POSSIBLE"
        assert body["findings"]["requirements"]

    async def test_with_key_normalizes_without_storing(
        self, client: httpx.AsyncClient, registry, session, listing
    ):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/textsearch/json"):
                return httpx.Response(200, json={"status": "OK", "results": [{"place_id": "abc"}]})
            return httpx.Response(200, json={"status": "OK", "result": {
                "place_id": "abc",
                "name": "Shoreditch Heights",
                "user_ratings_total": 12,
                "reviews": [
                    {"author_name": "Priya Patel", "rating": 5, "text": "Spotless", "time": 1700000000},
                    {"author_name": "No Text", "rating": 4, "text": "", "time": 1700000000},
                ],
            }})

        registry.google_client = google_client(handler)

        response = await client.get(
            "/api/google-reviews/test", params={"query": "Shoreditch", "listingId": listing.id}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["place"]["name"] == "Shoreditch Heights"
        assert data["place"]["totalReviews"] == 12
        assert len(data["reviews"]) == 1
        assert data["reviews"][0]["source"] == "google"
        assert data["reviews"][0]["listingId"] == listing.id
        assert len(data["rejected"]) == 1
        assert await ReviewRepository(session).count() == 0

    async def test_provider_failure_is_502(self, client: httpx.AsyncClient, registry):
        registry.google_client = google_client(lambda request: httpx.Response(500))

        response = await client.get("/api/google-reviews/test")

        assert response.status_code == 502
        assert response.json()["findings"]["recommendations"]


class TestHealth:

    async def test_healthy(self, client: httpx.AsyncClient):
        response = await client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["hostaway"]["configured"] is False
