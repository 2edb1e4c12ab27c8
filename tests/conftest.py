"""Shared pytest fixtures.

Every test gets its own in-memory SQLite database, in-memory cache and
rate limiter, and stub provider clients that never touch the network.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta

import httpx
import pytest

from review_dashboard.core.config import (
    CacheSettings,
    DatabaseSettings,
    IntegrationSettings,
    ModerationSettings,
    RateLimitSettings,
    Settings,
)
from review_dashboard.core.database import DatabaseManager
from review_dashboard.core.registry import ServiceRegistry
from review_dashboard.core.security import PasswordManager
from review_dashboard.main import create_app
from review_dashboard.models import Base, Listing, Manager, Review
from review_dashboard.models.base import ReviewSource, ReviewStatus, ReviewType
from review_dashboard.services.integrations import GooglePlacesClient, HostawayClient
from review_dashboard.utils.datetime_utils import DateTimeHelper

MANAGER_PASSWORD = "shoreditch2024"


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected outbound request: {request.method} {request.url}")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="testing",
        CREATE_TABLES_ON_STARTUP=False,
        database=DatabaseSettings(DATABASE_URL="sqlite+aiosqlite:///:memory:", DB_RETRY_DELAY=0),
        cache=CacheSettings(CACHE_BACKEND="memory"),
        rate_limit=RateLimitSettings(RATE_LIMIT_BACKEND="memory"),
        integrations=IntegrationSettings(
            HOSTAWAY_ACCOUNT_ID=None,
            HOSTAWAY_API_KEY=None,
            GOOGLE_PLACES_API_KEY=None,
        ),
        moderation=ModerationSettings(),
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[DatabaseManager]:
    manager = DatabaseManager(settings.database)
    await manager.create_tables(Base.metadata)
    yield manager
    await manager.close()


@pytest.fixture
async def session(database: DatabaseManager):
    """A bare session for repository and service tests."""
    async with database.async_session_factory() as session:
        yield session


@pytest.fixture
def hostaway_client(settings: Settings) -> HostawayClient:
    """Unconfigured Hostaway client; tests swap in configured ones as needed."""
    return HostawayClient.from_settings(settings.integrations, transport=httpx.MockTransport(_unreachable))


@pytest.fixture
async def registry(
    settings: Settings,
    database: DatabaseManager,
    hostaway_client: HostawayClient,
) -> AsyncGenerator[ServiceRegistry]:
    registry = ServiceRegistry.from_settings(
        settings,
        database=database,
        hostaway_client=hostaway_client,
        google_client=GooglePlacesClient.from_settings(
            settings.integrations, transport=httpx.MockTransport(_unreachable)
        ),
    )
    yield registry
    await registry.cache.close()
    await registry.rate_limiter.close()


@pytest.fixture
def app(registry: ServiceRegistry):
    return create_app(registry=registry)


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


# ------------------------------------------------------------------ #
# Seed data
# ------------------------------------------------------------------ #
@pytest.fixture
async def manager(session) -> Manager:
    manager = Manager(
        name="Dana Reviewer",
        email="dana@flexliving.com",
        password_hash=PasswordManager.hash_password(MANAGER_PASSWORD),
        is_first_user=True,
    )
    session.add(manager)
    await session.commit()
    return manager


@pytest.fixture
def auth_headers(registry: ServiceRegistry, manager: Manager) -> dict:
    token = registry.token_manager.create_manager_token(manager.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def listing(session) -> Listing:
    listing = Listing(name="2B N1 A - 29 Shoreditch Heights", hostaway_listing_id=70985, city="London")
    session.add(listing)
    await session.commit()
    return listing


@pytest.fixture
def make_review(session, listing: Listing) -> Callable:
    """Factory that stores a review row and returns it."""
    counter = {"n": 0}

    async def _make(
        status: ReviewStatus = ReviewStatus.PENDING,
        is_public: bool = False,
        rating: int = 5,
        submitted_at: datetime = None,
        listing_id: int = None,
        **overrides,
    ) -> Review:
        counter["n"] += 1
        values = dict(
            source=ReviewSource.HOSTAWAY,
            external_id=str(7450 + counter["n"]),
            hostaway_id=7450 + counter["n"],
            listing_id=listing_id or listing.id,
            type=ReviewType.GUEST_TO_HOST,
            status=status,
            rating=rating,
            content=f"Lovely stay number {counter['n']}",
            categories=[{"category": "cleanliness", "rating": 10}],
            author_name="Shane Finkelstein",
            submitted_at=submitted_at or DateTimeHelper.now() - timedelta(days=counter["n"]),
            is_public=is_public,
            approved_at=DateTimeHelper.now() if status == ReviewStatus.APPROVED else None,
        )
        values.update(overrides)
        review = Review(**values)
        session.add(review)
        await session.commit()
        return review

    return _make
