"""
Aggregate review statistics for the dashboard.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from review_dashboard.models.base import ReviewStatus, ReviewType
from review_dashboard.schemas.review import ReviewStats, ReviewTypeBreakdown
from review_dashboard.utils.datetime_utils import DateTimeHelper

WEEK = timedelta(days=7)
RECENT_WINDOW = timedelta(days=30)


def calculate_review_stats(reviews: Iterable, now: Optional[datetime] = None) -> ReviewStats:
    """
    Compute dashboard counters.

    Works on ORM rows and on ``NormalizedReview`` alike; only ``status``,
    ``type``, ``rating`` and ``submitted_at`` are read.

    Args:
        reviews: Reviews to aggregate
        now: Reference time for the weekly and 30-day windows

    Returns:
        ReviewStats with the average rating rounded to one decimal
    """
    now = DateTimeHelper.ensure_utc(now) if now else DateTimeHelper.now()
    week_start = now - WEEK
    recent_start = now - RECENT_WINDOW

    stats = ReviewStats()
    by_type = ReviewTypeBreakdown()
    by_rating = {str(star): 0 for star in range(1, 6)}
    rating_sum = 0
    rated = 0

    for review in reviews:
        stats.total += 1

        if review.status == ReviewStatus.PENDING:
            stats.pending += 1
        elif review.status == ReviewStatus.APPROVED:
            stats.approved += 1
        elif review.status == ReviewStatus.REJECTED:
            stats.rejected += 1

        if review.type == ReviewType.HOST_TO_GUEST:
            by_type.host_to_guest += 1
        elif review.type == ReviewType.GUEST_TO_HOST:
            by_type.guest_to_host += 1

        if review.rating is not None:
            rating_sum += review.rating
            rated += 1
            key = str(review.rating)
            if key in by_rating:
                by_rating[key] += 1

        submitted_at = DateTimeHelper.ensure_utc(review.submitted_at)
        if submitted_at >= week_start:
            stats.this_week += 1
        if submitted_at >= recent_start:
            stats.recent_activity += 1

    stats.average_rating = round(rating_sum / rated, 1) if rated else 0.0
    stats.by_type = by_type
    stats.by_rating = by_rating
    return stats
