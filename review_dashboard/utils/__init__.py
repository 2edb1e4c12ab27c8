"""
Shared helpers for dates and text.
"""

from review_dashboard.utils.datetime_utils import DateTimeHelper
from review_dashboard.utils.string_utils import StringHelper

__all__ = ["DateTimeHelper", "StringHelper"]
