"""
Public review read path.

The only query reachable without authentication: approved, public reviews
of one listing, reduced to display fields.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.cache import CacheManager
from review_dashboard.core.config import ModerationSettings
from review_dashboard.core.exceptions import ListingNotFoundError
from review_dashboard.repositories.listing import ListingRepository
from review_dashboard.repositories.review import PUBLIC_LIMIT_MAX, ReviewRepository, clamp_public_limit
from review_dashboard.schemas.review import PublicReview, PublicReviewList

PUBLIC_REVIEWS_ROUTE = "public_reviews"


def public_reviews_cache_pattern(listing_id: int) -> str:
    """Glob matching every cached public-review response of a listing"""
    return f"{PUBLIC_REVIEWS_ROUTE}:listing_id={listing_id}:*"


async def invalidate_public_reviews(cache: CacheManager, listing_id: int) -> int:
    return await cache.clear(public_reviews_cache_pattern(listing_id))


def resolve_public_limit(limit: Optional[int], moderation_settings: ModerationSettings) -> int:
    """Server-side limit in [1, PUBLIC_REVIEWS_MAX_LIMIT]; default when omitted"""
    if limit is None:
        limit = moderation_settings.PUBLIC_REVIEWS_DEFAULT_LIMIT
    return clamp_public_limit(limit, min(moderation_settings.PUBLIC_REVIEWS_MAX_LIMIT, PUBLIC_LIMIT_MAX))


class PublicReviewService:

    def __init__(self, session: AsyncSession, moderation_settings: Optional[ModerationSettings] = None):
        self.settings = moderation_settings or ModerationSettings()
        self.reviews = ReviewRepository(session)
        self.listings = ListingRepository(session)

    def clamp_limit(self, limit: Optional[int]) -> int:
        return resolve_public_limit(limit, self.settings)

    async def get_public_reviews(self, listing_id: int, limit: Optional[int] = None) -> PublicReviewList:
        """
        Public reviews of a listing, newest first.

        Raises:
            ListingNotFoundError: If the listing does not exist
        """
        limit = self.clamp_limit(limit)
        if not await self.listings.exists(listing_id):
            raise ListingNotFoundError(listing_id)

        rows = await self.reviews.get_public(listing_id, limit)
        reviews = [PublicReview.model_validate(row) for row in rows]
        return PublicReviewList(
            reviews=reviews,
            listing_id=listing_id,
            count=len(reviews),
            limit=limit,
        )
