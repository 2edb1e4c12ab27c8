"""
Date and time utilities. Everything stored or compared is UTC.
"""

from datetime import datetime, timedelta
from typing import Union

from dateutil import parser, tz


class DateTimeHelper:
    """UTC-centric date and time helpers"""

    @staticmethod
    def now() -> datetime:
        """Current timezone-aware UTC datetime"""
        return datetime.now(tz.UTC)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """Attach UTC to naive values, convert aware ones to UTC"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=tz.UTC)
        return dt.astimezone(tz.UTC)

    @staticmethod
    def parse_datetime(value: Union[str, int, float, datetime]) -> datetime:
        """
        Parse provider timestamps into aware UTC datetimes.

        Accepts ``datetime`` objects, epoch seconds, ISO strings and the
        ``YYYY-MM-DD HH:MM:SS`` form used by property-management APIs.
        Naive values are taken as UTC.

        Raises:
            ValueError: if the value cannot be parsed
        """
        if isinstance(value, datetime):
            return DateTimeHelper.ensure_utc(value)
        if isinstance(value, bool):
            raise ValueError(f"Unable to parse datetime value: {value!r}")
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz.UTC)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Unable to parse datetime value: {value!r}")

        try:
            parsed = parser.isoparse(value.strip())
        except ValueError:
            try:
                parsed = parser.parse(value.strip())
            except (ValueError, OverflowError) as e:
                raise ValueError(f"Unable to parse datetime string: {value}") from e
        return DateTimeHelper.ensure_utc(parsed)

    @staticmethod
    def days_ago(days: int) -> datetime:
        return DateTimeHelper.now() - timedelta(days=days)
