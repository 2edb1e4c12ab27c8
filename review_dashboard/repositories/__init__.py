"""
Repository layer.

Repositories wrap an ``AsyncSession``, translate SQLAlchemy failures into
application exceptions and leave commits to the services.
"""

from review_dashboard.repositories.base import BaseRepository
from review_dashboard.repositories.listing import ListingRepository
from review_dashboard.repositories.manager import ManagerRepository
from review_dashboard.repositories.review import ActivityLogRepository, ReviewRepository

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "ManagerRepository",
    "ActivityLogRepository",
    "ReviewRepository",
]
