"""
Base models package.

Provides the declarative base, mixins and enums shared by all models.
"""

from review_dashboard.models.base.base_model import Base, BaseModel, enum_type, json_type
from review_dashboard.models.base.mixins import TimestampMixin
from review_dashboard.models.base.enums import (
    ActivityAction,
    ReviewSource,
    ReviewStatus,
    ReviewType,
)

__all__ = [
    "Base",
    "BaseModel",
    "enum_type",
    "json_type",
    "TimestampMixin",
    "ActivityAction",
    "ReviewSource",
    "ReviewStatus",
    "ReviewType",
]
