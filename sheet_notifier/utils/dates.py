"""Date utilities for timezone-aware rule evaluation.

This module provides utilities for working with sheet dates:
- Resolving "today" in a named IANA timezone
- Computing whole-day differences between dates
- Parsing raw cell values into datetimes
- Formatting dates for notifications and logs
"""

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

SECONDS_PER_DAY = 24 * 60 * 60

# Day zero of spreadsheet serial date numbers
SERIAL_EPOCH = datetime(1899, 12, 30)

DEFAULT_DATE_FORMAT = "%Y/%m/%d"

_STRING_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
)


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def get_zone(tz_name: str) -> ZoneInfo:
    """Look up an IANA timezone.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the name is unknown
    """
    return ZoneInfo(tz_name)


def today_in_timezone(tz_name: str, now: Optional[datetime] = None) -> date:
    """Return the civil date of the current instant in a timezone.

    Args:
        tz_name: IANA timezone name (e.g. "Asia/Tokyo")
        now: Instant to convert (defaults to the current UTC time)

    Returns:
        Calendar date in the given timezone

    Example:
        >>> today_in_timezone("Asia/Tokyo", datetime(2024, 3, 1, 16, 0, tzinfo=timezone.utc))
        datetime.date(2024, 3, 2)
    """
    instant = now or utc_now()
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(get_zone(tz_name)).date()


def to_local_date(value: DateLike, tz_name: Optional[str] = None) -> date:
    """Truncate a date or datetime to its wall-clock calendar date.

    Aware datetimes are converted into tz_name first when it is given.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz_name:
            value = value.astimezone(get_zone(tz_name))
        return value.date()
    return value


def days_between(start: DateLike, end: DateLike) -> int:
    """Count the days from start to end, ignoring the time of day.

    Both values are truncated to midnight wall-clock time before the
    difference is taken; any sub-day residual rounds up.

    Args:
        start: Reference date (usually today)
        end: Target date

    Returns:
        Number of days, positive when end is after start

    Example:
        >>> days_between(date(2024, 1, 10), date(2024, 1, 13))
        3
    """
    start_midnight = datetime.combine(to_local_date(start), time.min)
    end_midnight = datetime.combine(to_local_date(end), time.min)
    delta = end_midnight - start_midnight
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def parse_date(value: Any) -> Optional[datetime]:
    """Convert a raw cell value into a datetime.

    Supports:
    - datetime and date objects
    - Spreadsheet serial day numbers (int or float)
    - ISO 8601 strings (2024-03-02, 2024-03-02T09:30:00, trailing Z)
    - Slash-separated strings (2024/03/02, 2024/3/2 9:30, 3/2/2024)

    Args:
        value: Raw cell value

    Returns:
        Parsed datetime, or None for empty or unparseable values
    """
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime.combine(value, time.min)

    if isinstance(value, (int, float)):
        try:
            return SERIAL_EPOCH + timedelta(days=value)
        except (OverflowError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    iso_candidate = cleaned[:-1] + "+00:00" if cleaned.endswith("Z") else cleaned
    try:
        return datetime.fromisoformat(iso_candidate)
    except ValueError:
        pass

    for fmt in _STRING_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue

    return None


def is_valid_date(value: Any) -> bool:
    """Check whether a raw cell value holds a usable date."""
    return parse_date(value) is not None


def format_date(
    value: Optional[DateLike], tz_name: str, pattern: str = DEFAULT_DATE_FORMAT
) -> str:
    """Format a date for display in a timezone.

    Aware datetimes are converted into the timezone; naive values are
    formatted as wall-clock time. Failures are logged, not raised.

    Args:
        value: Date or datetime to format
        tz_name: IANA timezone name
        pattern: strftime pattern (default: %Y/%m/%d)

    Returns:
        Formatted string, or an empty string on None input or failure
    """
    if value is None:
        return ""

    try:
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(get_zone(tz_name))
        return value.strftime(pattern)
    except Exception as e:
        logger.warning(
            f"Date format error: {e}",
            extra={"event": "date.format.failed", "tz_name": tz_name, "pattern": pattern},
        )
        return ""


def format_send_timestamp(now: datetime, tz_name: str) -> str:
    """Format a send time the way ja-JP locale strings render it.

    Example:
        >>> format_send_timestamp(datetime(2024, 3, 1, 0, 5, 7, tzinfo=timezone.utc), "Asia/Tokyo")
        '2024/3/1 9:05:07'
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(get_zone(tz_name))
    return f"{local.year}/{local.month}/{local.day} {local.hour}:{local.minute:02d}:{local.second:02d}"


def format_iso_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with millisecond precision.

    Example:
        >>> format_iso_timestamp(datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc))
        '2024-03-01T00:00:00.000Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
