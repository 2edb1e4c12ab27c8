"""
Activity log repository: audit rows for manager moderation actions.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.database import handle_database_exception
from review_dashboard.models.base import ActivityAction
from review_dashboard.models.review import ActivityLog
from review_dashboard.repositories.base import BaseRepository


class ActivityLogRepository(BaseRepository[ActivityLog]):

    def __init__(self, session: AsyncSession):
        super().__init__(ActivityLog, session)

    async def log_action(
        self,
        manager_id: Optional[int],
        action: ActivityAction,
        review_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None
    ) -> ActivityLog:
        """
        Record a moderation action.

        The row joins the caller's transaction and is committed together
        with the change it describes.
        """
        entry = ActivityLog(
            manager_id=manager_id,
            action=action,
            review_id=review_id,
            details=details or {},
            ip_address=ip_address,
        )
        return await self.create(entry)

    async def list_for_review(self, review_id: int, limit: int = 50) -> List[ActivityLog]:
        query = (
            select(ActivityLog)
            .where(ActivityLog.review_id == review_id)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
            .limit(limit)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise handle_database_exception(e, "list activity") from e
        return list(result.scalars().all())
