"""Tests for the manager listing endpoints."""

import httpx
import pytest

from review_dashboard.models import Listing
from review_dashboard.models.base import ReviewStatus


@pytest.fixture
async def loft(session) -> Listing:
    loft = Listing(name="Camden Loft", hostaway_listing_id=81234, city="London", address="12 Jamestown Road")
    session.add(loft)
    await session.commit()
    return loft


@pytest.fixture
async def cottage(session) -> Listing:
    cottage = Listing(name="Cotswolds Cottage", city="Bibury")
    session.add(cottage)
    await session.commit()
    return cottage


class TestListingsRequireManager:

    @pytest.mark.parametrize("path", ["/api/listings", "/api/listings/stats", "/api/listings/1"])
    async def test_token_is_required(self, client: httpx.AsyncClient, path):
        response = await client.get(path)
        assert response.status_code == 401


class TestListListings:

    async def test_review_counters(self, client: httpx.AsyncClient, auth_headers, make_review, listing, loft):
        await make_review(rating=4)
        await make_review(rating=5, status=ReviewStatus.APPROVED, is_public=True)
        await make_review(rating=2, listing_id=loft.id, status=ReviewStatus.REJECTED)

        response = await client.get("/api/listings", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        by_name = {item["name"]: item for item in data["listings"]}
        heights = by_name["2B N1 A - 29 Shoreditch Heights"]
        assert heights["reviewCount"] == 2
        assert heights["pendingCount"] == 1
        assert heights["publicCount"] == 1
        assert heights["averageRating"] == 4.5
        assert by_name["Camden Loft"]["reviewCount"] == 1
        assert by_name["Camden Loft"]["hostawayListingId"] == 81234

    async def test_listing_without_reviews_has_zero_counters(self, client: httpx.AsyncClient, auth_headers, cottage):
        response = await client.get("/api/listings", params={"search": "cotswolds"}, headers=auth_headers)

        [item] = response.json()["data"]["listings"]
        assert item["reviewCount"] == 0
        assert item["averageRating"] == 0.0

    async def test_search_matches_address_and_city_filters(
        self, client: httpx.AsyncClient, auth_headers, listing, loft, cottage
    ):
        by_address = await client.get("/api/listings", params={"search": "jamestown"}, headers=auth_headers)
        in_london = await client.get("/api/listings", params={"city": "london"}, headers=auth_headers)

        assert [item["id"] for item in by_address.json()["data"]["listings"]] == [loft.id]
        assert {item["id"] for item in in_london.json()["data"]["listings"]} == {listing.id, loft.id}

    async def test_sort_by_review_count_and_paginate(
        self, client: httpx.AsyncClient, auth_headers, make_review, listing, loft, cottage
    ):
        await make_review()
        await make_review()
        await make_review(listing_id=loft.id)

        response = await client.get(
            "/api/listings",
            params={"sortBy": "reviewCount", "sortOrder": "desc", "limit": 2},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert [item["id"] for item in data["listings"]] == [listing.id, loft.id]
        assert data["totalPages"] == 2

    async def test_unknown_sort_is_422(self, client: httpx.AsyncClient, auth_headers):
        response = await client.get("/api/listings", params={"sortBy": "price"}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestListingStats:

    async def test_portfolio_aggregates(
        self, client: httpx.AsyncClient, auth_headers, make_review, listing, loft, cottage
    ):
        await make_review(rating=3, status=ReviewStatus.APPROVED, is_public=True)
        await make_review(rating=5, listing_id=loft.id, status=ReviewStatus.APPROVED)
        await make_review(rating=1, listing_id=loft.id)

        response = await client.get("/api/listings/stats", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"] == {
            "totalListings": 3,
            "listingsWithReviews": 2,
            "listingsWithPublicReviews": 1,
        }
        assert data["reviews"]["total"] == 3
        assert data["reviews"]["approved"] == 2
        assert data["byCity"][0] == {"city": "London", "count": 2}
        # ranked on approved reviews only
        assert [item["id"] for item in data["topRated"]] == [loft.id, listing.id]
        assert data["topRated"][0]["averageRating"] == 5.0

    async def test_empty_portfolio(self, client: httpx.AsyncClient, auth_headers):
        response = await client.get("/api/listings/stats", headers=auth_headers)

        data = response.json()["data"]
        assert data["overview"]["totalListings"] == 0
        assert data["topRated"] == []


class TestGetListing:

    async def test_listing_with_stats(self, client: httpx.AsyncClient, auth_headers, make_review, listing, loft):
        await make_review(rating=4)
        await make_review(rating=2, status=ReviewStatus.APPROVED)
        await make_review(rating=5, listing_id=loft.id)

        response = await client.get(f"/api/listings/{listing.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["listing"]["name"] == "2B N1 A - 29 Shoreditch Heights"
        assert data["stats"]["total"] == 2
        assert data["stats"]["pending"] == 1
        assert data["stats"]["averageRating"] == 3.0
        assert data["reviews"] is None

    async def test_newest_reviews_on_request(self, client: httpx.AsyncClient, auth_headers, make_review, listing):
        for _ in range(3):
            await make_review()

        response = await client.get(
            f"/api/listings/{listing.id}",
            params={"includeReviews": "true", "reviewsLimit": 2},
            headers=auth_headers,
        )

        reviews = response.json()["data"]["reviews"]
        assert len(reviews) == 2
        assert reviews[0]["submittedAt"] > reviews[1]["submittedAt"]

    async def test_unknown_listing_is_404(self, client: httpx.AsyncClient, auth_headers):
        response = await client.get("/api/listings/999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LISTING_NOT_FOUND"
