from review_dashboard.repositories.review.review_repository import (
    PUBLIC_LIMIT_MAX,
    ReviewRepository,
    clamp_public_limit,
)
from review_dashboard.repositories.review.activity_log_repository import ActivityLogRepository

__all__ = [
    "PUBLIC_LIMIT_MAX",
    "ReviewRepository",
    "clamp_public_limit",
    "ActivityLogRepository",
]
