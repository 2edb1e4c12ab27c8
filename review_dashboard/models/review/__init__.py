"""
Review models.
"""

from review_dashboard.models.review.review import Review
from review_dashboard.models.review.activity_log import ActivityLog

__all__ = ["Review", "ActivityLog"]
