"""
SQLAlchemy model mixins for reusable functionality.
"""

from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func

from review_dashboard.utils.datetime_utils import DateTimeHelper


class TimestampMixin:
    """
    Mixin for automatic timestamp tracking.

    ``updated_at`` is refreshed by the ORM on flush and by every
    Core ``UPDATE`` issued through the repositories.
    """

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=DateTimeHelper.now,
        server_default=func.now(),
        comment="Record creation timestamp (UTC)"
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=DateTimeHelper.now,
        server_default=func.now(),
        onupdate=DateTimeHelper.now,
        comment="Record last update timestamp (UTC)"
    )
