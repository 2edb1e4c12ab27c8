"""
Review ingestion from Hostaway.

Fetches listings and reviews, normalizes them and upserts each review in
its own transaction. When Hostaway is not configured or fails, the report
is built from the reviews already stored.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.cache import CacheManager
from review_dashboard.core.config import DatabaseSettings, ModerationSettings
from review_dashboard.core.database import execute_with_retry
from review_dashboard.core.exceptions import DatabaseError, ExternalServiceError
from review_dashboard.core.logging import get_logger
from review_dashboard.models.review import Review
from review_dashboard.repositories.listing import ListingRepository
from review_dashboard.repositories.review import ReviewRepository
from review_dashboard.schemas.review import NormalizedReview, RejectedEntry, ReviewStats
from review_dashboard.services.integrations import HostawayClient
from review_dashboard.services.normalization import (
    NormalizationContext,
    ReviewNormalizer,
    calculate_review_stats,
)
from review_dashboard.services.review.public_review_service import invalidate_public_reviews
from review_dashboard.utils.string_utils import StringHelper

logger = get_logger(__name__)


@dataclass
class IngestionReport:
    reviews: List[Review] = field(default_factory=list)
    rejected: List[RejectedEntry] = field(default_factory=list)
    stats: ReviewStats = field(default_factory=ReviewStats)
    source_available: bool = False
    ingested: int = 0


class ReviewIngestionService:
    """Pulls Hostaway reviews into the review store"""

    def __init__(
        self,
        session: AsyncSession,
        hostaway_client: HostawayClient,
        cache: Optional[CacheManager] = None,
        moderation_settings: Optional[ModerationSettings] = None,
        db_settings: Optional[DatabaseSettings] = None
    ):
        self.session = session
        self.client = hostaway_client
        self.cache = cache
        self.moderation_settings = moderation_settings or ModerationSettings()
        self.db_settings = db_settings or DatabaseSettings()
        self.reviews = ReviewRepository(session)
        self.listings = ListingRepository(session)
        self.normalizer = ReviewNormalizer()

    async def ingest_hostaway(self) -> IngestionReport:
        """
        Run one ingestion pass.

        Returns:
            IngestionReport with every stored review, the rejected raw
            entries and dashboard stats
        """
        report = IngestionReport()

        payload = await self._fetch()
        if payload is not None:
            report.source_available = True
            context = await self._build_context()
            result = self.normalizer.normalize("hostaway", payload, context)
            report.rejected = list(result.rejected)

            rejected_indexes = {entry.index for entry in result.rejected}
            accepted_indexes = [i for i in range(result.total) if i not in rejected_indexes]

            touched_listings = set()
            for index, review in zip(accepted_indexes, result.reviews):
                try:
                    await execute_with_retry(
                        self._store,
                        review,
                        max_retries=self.db_settings.DB_MAX_RETRIES,
                        retry_delay=self.db_settings.DB_RETRY_DELAY,
                    )
                except DatabaseError as e:
                    await self.reviews.rollback()
                    logger.warning("Hostaway review could not be stored", extra={
                        'external_id': review.external_id,
                        'error': e.message,
                    })
                    report.rejected.append(RejectedEntry(
                        index=index,
                        source="hostaway",
                        reason=f"Could not be stored: {e.message}",
                        payload=review.model_dump(mode="json", by_alias=True),
                    ))
                    continue
                touched_listings.add(review.listing_id)
                report.ingested += 1
            report.rejected.sort(key=lambda entry: entry.index)

            if self.cache is not None:
                for listing_id in touched_listings:
                    await invalidate_public_reviews(self.cache, listing_id)

            logger.info("Hostaway ingestion completed", extra={
                'ingested': report.ingested,
                'rejected': len(report.rejected),
            })
            for entry in report.rejected:
                logger.debug("Hostaway entry rejected", extra={
                    'index': entry.index,
                    'reason': entry.reason,
                })

        report.reviews = await self.reviews.list_all()
        report.stats = calculate_review_stats(report.reviews)
        return report

    async def _fetch(self) -> Optional[Dict[str, Any]]:
        if not self.client.is_configured:
            logger.info("Hostaway not configured, serving stored reviews")
            return None
        try:
            await self._sync_listings(await self.client.fetch_listings())
            return await self.client.fetch_reviews()
        except ExternalServiceError as e:
            logger.warning("Hostaway unavailable, serving stored reviews", extra={'error': e.message})
            return None

    async def _sync_listings(self, raw_listings: List[Dict[str, Any]]):
        synced = 0
        for raw in raw_listings:
            hostaway_listing_id = raw.get("id")
            name = StringHelper.clean_whitespace(raw.get("name") or raw.get("externalListingName") or "")
            if not isinstance(hostaway_listing_id, int) or not name:
                continue
            try:
                await self.listings.upsert_from_hostaway(
                    hostaway_listing_id,
                    name,
                    address=StringHelper.clean_whitespace(raw.get("address") or "") or None,
                    city=StringHelper.clean_whitespace(raw.get("city") or "") or None,
                )
                await self.listings.commit()
            except DatabaseError as e:
                # e.g. a rename onto another listing's name
                await self.listings.rollback()
                logger.warning("Hostaway listing skipped", extra={
                    'hostaway_listing_id': hostaway_listing_id,
                    'error': e.message,
                })
                continue
            synced += 1
        logger.debug("Hostaway listings synced", extra={'count': synced})

    async def _build_context(self) -> NormalizationContext:
        return NormalizationContext.from_settings(
            self.moderation_settings,
            listing_ids_by_hostaway_id=await self.listings.get_hostaway_index(),
            listing_ids_by_name=await self.listings.get_name_index(),
        )

    async def _store(self, review: NormalizedReview) -> Review:
        stored = await self.reviews.upsert(review)
        await self.reviews.commit()
        return stored
