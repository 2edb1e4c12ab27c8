"""
Review Repository - keyed review storage and moderation writes.

Implements idempotent upserts keyed by ``(source, external_id)``, the
dashboard and public read paths, and the conditional updates the
moderation service relies on for atomic state transitions.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, asc, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from review_dashboard.core.database import handle_database_exception
from review_dashboard.core.logging import get_logger
from review_dashboard.models.base import ReviewStatus
from review_dashboard.models.review import Review
from review_dashboard.repositories.base import BaseRepository
from review_dashboard.schemas.review import NormalizedReview, ReviewFilterParams
from review_dashboard.utils.datetime_utils import DateTimeHelper

logger = get_logger(__name__)

PUBLIC_LIMIT_MAX = 50

SORT_COLUMNS = {
    "submittedAt": Review.submitted_at,
    "rating": Review.rating,
    "authorName": Review.author_name,
}


def clamp_public_limit(limit: Optional[int], maximum: int = PUBLIC_LIMIT_MAX) -> int:
    """Clamp a caller-supplied limit into [1, maximum]"""
    if limit is None:
        return maximum
    return max(1, min(int(limit), maximum))


class ReviewRepository(BaseRepository[Review]):
    """
    Repository for Review entity operations.

    Moderation fields are only ever written through ``transition`` and
    ``set_visibility``; ``upsert`` refreshes provider content and leaves
    manager decisions alone.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Review, session)

    # ==================== Ingestion ====================

    async def get_by_external_id(
        self,
        source: str,
        external_id: str,
        *,
        for_update: bool = False
    ) -> Optional[Review]:
        query = select(Review).where(
            and_(Review.source == source, Review.external_id == external_id)
        )
        if for_update:
            query = query.with_for_update()
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get review by external id") from e
        return result.scalar_one_or_none()

    async def upsert(self, review: NormalizedReview) -> Review:
        """
        Insert a normalized review or refresh the stored row with the same key.

        The existing row is locked while it is merged. Only content columns
        and ``updated_at`` change on an update; status, audit columns, notes
        and visibility stay as the manager left them. The status carried by
        the normalized review applies to inserts only.

        A concurrent insert of the same key surfaces as an IntegrityError on
        flush; the session is rolled back and the merge retried once as an
        update.

        Args:
            review: Canonical review produced by the normalizer

        Returns:
            The stored review row
        """
        try:
            return await self._merge(review)
        except IntegrityError:
            await self.session.rollback()
            logger.info("Duplicate review key on insert, retrying as update", extra={
                'source': review.source.value,
                'external_id': review.external_id,
            })
            try:
                return await self._merge(review)
            except SQLAlchemyError as e:
                await self.session.rollback()
                raise handle_database_exception(e, "upsert review") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise handle_database_exception(e, "upsert review") from e

    async def _merge(self, review: NormalizedReview) -> Review:
        source, external_id = review.idempotency_key
        existing = await self.get_by_external_id(source, external_id, for_update=True)
        values = review.content_values()
        now = DateTimeHelper.now()

        if existing is None:
            stored = Review(
                source=review.source,
                external_id=review.external_id,
                status=review.status,
                is_public=False,
                **values,
            )
            if review.status == ReviewStatus.APPROVED:
                # Already public at the source; no manager made this decision
                stored.approved_at = now
            self.session.add(stored)
            await self.session.flush()
            return stored

        for column, value in values.items():
            setattr(existing, column, value)
        existing.updated_at = now
        await self.session.flush()
        return existing

    # ==================== Queries ====================

    def _apply_filters(self, query: Select, filters: ReviewFilterParams) -> Select:
        conditions = []
        if filters.status is not None:
            conditions.append(Review.status == filters.status)
        if filters.type is not None:
            conditions.append(Review.type == filters.type)
        if filters.min_rating is not None:
            conditions.append(Review.rating >= filters.min_rating)
        if filters.max_rating is not None:
            conditions.append(Review.rating <= filters.max_rating)
        if filters.date_from is not None:
            conditions.append(Review.submitted_at >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(Review.submitted_at <= filters.date_to)
        if filters.search:
            escaped = (
                filters.search.replace("\\", "\\\\")
                .replace("%", "\\%")
                .replace("_", "\\_")
            )
            pattern = f"%{escaped}%"
            conditions.append(or_(
                Review.content.ilike(pattern, escape="\\"),
                Review.author_name.ilike(pattern, escape="\\"),
            ))
        if conditions:
            query = query.where(and_(*conditions))
        return query

    def _apply_sort(self, query: Select, filters: ReviewFilterParams) -> Select:
        column = SORT_COLUMNS.get(filters.sort_by, Review.submitted_at)
        direction = desc if filters.sort_order == "desc" else asc
        # id breaks ties so pages are stable
        return query.order_by(direction(column).nulls_last(), direction(Review.id))

    async def get_by_listing(
        self,
        listing_id: int,
        filters: Optional[ReviewFilterParams] = None
    ) -> List[Review]:
        """
        Reviews of one listing, filtered and paginated.

        Ordered by ``submitted_at`` descending unless the filters say
        otherwise.
        """
        filters = filters or ReviewFilterParams()
        query = select(Review).where(Review.listing_id == listing_id)
        query = self._apply_sort(self._apply_filters(query, filters), filters)
        query = query.offset(filters.offset).limit(filters.limit)
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get reviews by listing") from e
        return list(result.scalars().all())

    async def search(
        self,
        filters: ReviewFilterParams,
        listing_id: Optional[int] = None
    ) -> Tuple[List[Review], int]:
        """
        Dashboard query across listings.

        Returns:
            Tuple of (page of reviews, total matching rows)
        """
        base = select(Review)
        if listing_id is not None:
            base = base.where(Review.listing_id == listing_id)
        base = self._apply_filters(base, filters)

        count_query = select(func.count()).select_from(base.subquery())
        page_query = self._apply_sort(base, filters).offset(filters.offset).limit(filters.limit)
        try:
            total = (await self.session.execute(count_query)).scalar_one()
            result = await self.session.execute(page_query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "search reviews") from e
        return list(result.scalars().all()), int(total)

    async def get_public(self, listing_id: int, limit: int) -> List[Review]:
        """
        Approved and public reviews of a listing, newest first.

        ``limit`` is clamped to [1, 50].
        """
        query = (
            select(Review)
            .where(
                and_(
                    Review.listing_id == listing_id,
                    Review.status == ReviewStatus.APPROVED,
                    Review.is_public.is_(True),
                )
            )
            .order_by(desc(Review.submitted_at), desc(Review.id))
            .limit(clamp_public_limit(limit))
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get public reviews") from e
        return list(result.scalars().all())

    async def list_all(self, listing_id: Optional[int] = None) -> List[Review]:
        """Every stored review, newest first, optionally for one listing"""
        query = select(Review).order_by(desc(Review.submitted_at), desc(Review.id))
        if listing_id is not None:
            query = query.where(Review.listing_id == listing_id)
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "list reviews") from e
        return list(result.scalars().all())

    # ==================== Moderation Writes ====================

    async def transition(
        self,
        review_id: int,
        from_status: ReviewStatus,
        values: Dict[str, Any]
    ) -> bool:
        """
        Conditionally update a review that is still in ``from_status``.

        Issues ``UPDATE reviews SET ... WHERE id = :id AND status = :from``
        so that status and audit columns change in one statement. Concurrent
        writers that lost the race see ``False``.

        Returns:
            True when the row was updated
        """
        statement = (
            update(Review)
            .where(and_(Review.id == review_id, Review.status == from_status))
            .values(**values, updated_at=DateTimeHelper.now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "transition review") from e
        return result.rowcount == 1

    async def set_visibility(self, review_id: int, is_public: bool) -> bool:
        """Toggle ``is_public`` on an approved review; False when not approved"""
        statement = (
            update(Review)
            .where(and_(Review.id == review_id, Review.status == ReviewStatus.APPROVED))
            .values(is_public=is_public, updated_at=DateTimeHelper.now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "set review visibility") from e
        return result.rowcount == 1


__all__ = ["ReviewRepository", "clamp_public_limit", "PUBLIC_LIMIT_MAX"]
