"""
Listing Repository - properties that reviews attach to.

Also builds the lookup indexes the normalizer uses to resolve provider
listing references to internal ids, and the per-listing review aggregates
shown on the dashboard.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, asc, case, desc, distinct, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.database import handle_database_exception
from review_dashboard.core.logging import get_logger
from review_dashboard.models.base import ReviewStatus
from review_dashboard.models.listing import Listing
from review_dashboard.models.review import Review
from review_dashboard.repositories.base import BaseRepository
from review_dashboard.schemas.listing import ListingFilterParams

logger = get_logger(__name__)


class ListingRepository(BaseRepository[Listing]):
    """Repository for Listing entity operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Listing, session)

    # ==================== Lookups ====================

    async def get_by_name(self, name: str) -> Optional[Listing]:
        try:
            result = await self.session.execute(
                select(Listing).where(func.lower(Listing.name) == name.strip().lower())
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get listing by name") from e
        return result.scalars().first()

    async def get_by_hostaway_id(self, hostaway_listing_id: int) -> Optional[Listing]:
        try:
            result = await self.session.execute(
                select(Listing).where(Listing.hostaway_listing_id == hostaway_listing_id)
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get listing by hostaway id") from e
        return result.scalar_one_or_none()

    async def get_name_index(self) -> Dict[str, int]:
        """Lowercased listing name -> listing id"""
        try:
            result = await self.session.execute(select(Listing.id, Listing.name))
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "build listing name index") from e
        return {row.name.strip().lower(): row.id for row in result}

    async def get_hostaway_index(self) -> Dict[int, int]:
        """Hostaway listing id -> listing id"""
        try:
            result = await self.session.execute(
                select(Listing.id, Listing.hostaway_listing_id)
                .where(Listing.hostaway_listing_id.is_not(None))
            )
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "build listing hostaway index") from e
        return {row.hostaway_listing_id: row.id for row in result}

    # ==================== Writes ====================

    async def upsert_from_hostaway(
        self,
        hostaway_listing_id: int,
        name: str,
        address: Optional[str] = None,
        city: Optional[str] = None
    ) -> Listing:
        """
        Create or refresh a listing from the Hostaway listings feed.

        Matches on the Hostaway id first, then on the name so listings that
        were created by hand get linked to their Hostaway counterpart.
        """
        listing = await self.get_by_hostaway_id(hostaway_listing_id)
        if listing is None:
            listing = await self.get_by_name(name)

        if listing is None:
            listing = Listing(
                hostaway_listing_id=hostaway_listing_id,
                name=name.strip(),
                address=address,
                city=city,
            )
            await self.create(listing)
            logger.info("Listing created from Hostaway", extra={
                'listing_id': listing.id,
                'hostaway_listing_id': hostaway_listing_id,
            })
            return listing

        listing.hostaway_listing_id = hostaway_listing_id
        listing.name = name.strip()
        if address:
            listing.address = address
        if city:
            listing.city = city
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise handle_database_exception(e, "update listing") from e
        return listing

    # ==================== Dashboard Aggregates ====================

    @staticmethod
    def _review_counts(approved_only: bool = False):
        is_public = and_(Review.status == ReviewStatus.APPROVED, Review.is_public.is_(True))
        query = select(
            Review.listing_id.label("listing_id"),
            func.count(Review.id).label("review_count"),
            func.sum(case((Review.status == ReviewStatus.PENDING, 1), else_=0)).label("pending_count"),
            func.sum(case((is_public, 1), else_=0)).label("public_count"),
            func.avg(Review.rating).label("average_rating"),
        )
        if approved_only:
            query = query.where(Review.status == ReviewStatus.APPROVED)
        return query.group_by(Review.listing_id).subquery()

    @staticmethod
    def _summary(listing: Listing, counts) -> Dict[str, Any]:
        average = counts.average_rating
        return {
            "id": listing.id,
            "name": listing.name,
            "hostaway_listing_id": listing.hostaway_listing_id,
            "address": listing.address,
            "city": listing.city,
            "created_at": listing.created_at,
            "review_count": int(counts.review_count or 0),
            "pending_count": int(counts.pending_count or 0),
            "public_count": int(counts.public_count or 0),
            "average_rating": round(float(average), 1) if average is not None else 0.0,
        }

    def _with_counts(self, counts):
        return select(
            Listing,
            counts.c.review_count,
            counts.c.pending_count,
            counts.c.public_count,
            counts.c.average_rating,
        ).outerjoin(counts, counts.c.listing_id == Listing.id)

    async def search(self, filters: ListingFilterParams) -> Tuple[List[Dict[str, Any]], int]:
        """
        Dashboard listing query with review counters.

        Returns:
            Tuple of (page of listing summaries, total matching listings)
        """
        counts = self._review_counts()
        conditions = []
        if filters.search:
            escaped = (
                filters.search.replace("\\", "\\\\")
                .replace("%", "\\%")
                .replace("_", "\\_")
            )
            pattern = f"%{escaped}%"
            conditions.append(or_(
                Listing.name.ilike(pattern, escape="\\"),
                Listing.address.ilike(pattern, escape="\\"),
            ))
        if filters.city:
            conditions.append(func.lower(Listing.city) == filters.city.strip().lower())

        sort_columns = {
            "name": Listing.name,
            "city": Listing.city,
            "createdAt": Listing.created_at,
            "reviewCount": func.coalesce(counts.c.review_count, 0),
            "averageRating": counts.c.average_rating,
        }
        direction = desc if filters.sort_order == "desc" else asc

        base = self._with_counts(counts)
        if conditions:
            base = base.where(and_(*conditions))
        count_query = select(func.count()).select_from(Listing)
        if conditions:
            count_query = count_query.where(and_(*conditions))
        page_query = (
            base.order_by(direction(sort_columns[filters.sort_by]).nulls_last(), direction(Listing.id))
            .offset(filters.offset)
            .limit(filters.limit)
        )
        try:
            total = (await self.session.execute(count_query)).scalar_one()
            result = await self.session.execute(page_query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "search listings") from e
        return [self._summary(row.Listing, row) for row in result], int(total)

    async def get_summary(self, listing_id: int) -> Optional[Dict[str, Any]]:
        query = self._with_counts(self._review_counts()).where(Listing.id == listing_id)
        try:
            row = (await self.session.execute(query)).first()
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get listing summary") from e
        return self._summary(row.Listing, row) if row is not None else None

    async def get_top_rated(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Listings by average approved rating, best first; unrated ones left out"""
        counts = self._review_counts(approved_only=True)
        query = (
            self._with_counts(counts)
            .where(counts.c.average_rating.is_not(None))
            .order_by(desc(counts.c.average_rating), desc(counts.c.review_count), Listing.id)
            .limit(limit)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "get top rated listings") from e
        return [self._summary(row.Listing, row) for row in result]

    async def count_by_city(self, limit: int = 10) -> List[Tuple[Optional[str], int]]:
        listing_count = func.count(Listing.id)
        query = (
            select(Listing.city, listing_count.label("count"))
            .group_by(Listing.city)
            .order_by(desc(listing_count), asc(Listing.city))
            .limit(limit)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "count listings by city") from e
        return [(row.city, int(row.count)) for row in result]

    async def count_with_reviews(self, public_only: bool = False) -> int:
        query = select(func.count(distinct(Review.listing_id)))
        if public_only:
            query = query.where(and_(Review.status == ReviewStatus.APPROVED, Review.is_public.is_(True)))
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "count listings with reviews") from e
        return int(result.scalar_one())
