"""
Activity log of manager moderation actions.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from review_dashboard.models.base import ActivityAction, BaseModel, enum_type, json_type
from review_dashboard.utils.datetime_utils import DateTimeHelper

__all__ = ["ActivityLog"]


class ActivityLog(BaseModel):
    """One row per moderation action, written in the action's transaction"""

    __tablename__ = "activity_logs"

    manager_id = Column(
        Integer,
        ForeignKey("managers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = Column(enum_type(ActivityAction, "activity_action"), nullable=False, index=True)
    review_id = Column(
        Integer,
        ForeignKey("reviews.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    details = Column(json_type, nullable=False, default=dict)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=DateTimeHelper.now)
