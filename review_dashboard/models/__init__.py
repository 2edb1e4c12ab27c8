"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from review_dashboard.models.base import Base, ReviewSource, ReviewStatus, ReviewType
from review_dashboard.models.listing import Listing
from review_dashboard.models.manager import Manager
from review_dashboard.models.review import ActivityLog, Review

__all__ = [
    "Base",
    "ReviewSource",
    "ReviewStatus",
    "ReviewType",
    "Listing",
    "Manager",
    "ActivityLog",
    "Review",
]
