"""DateTime utilities for the assessment engine.

All engine arithmetic happens on timezone-aware UTC datetimes and integer
millisecond durations.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from assessment_engine.utils.constants import MS_PER_DAY, MS_PER_HOUR, MS_PER_SECOND


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        datetime: Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime, assuming UTC for naive values."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime) to aware UTC.

    Args:
        value: ISO-8601 string, datetime or None

    Returns:
        datetime: Parsed UTC datetime, or None for empty input

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def duration_ms(start: datetime, end: datetime) -> int:
    """Signed duration between two datetimes in whole milliseconds."""
    delta = ensure_utc(end) - ensure_utc(start)
    return round(delta.total_seconds() * MS_PER_SECOND)


def split_days_hours(total_ms: int) -> Tuple[int, int]:
    """Split a non-negative duration into whole days and remaining hours."""
    days, remainder = divmod(total_ms, MS_PER_DAY)
    return days, remainder // MS_PER_HOUR


def format_duration_ms(total_ms: int) -> str:
    """Format a duration as ``"Xm Ys"`` the way result dashboards show it.

    Args:
        total_ms: Duration in milliseconds

    Returns:
        str: Human readable duration
    """
    total_seconds = max(round(total_ms / MS_PER_SECOND), 0)
    minutes, seconds = divmod(total_seconds, 60)
    if minutes == 0:
        return f"{seconds}s"
    return f"{minutes}m {seconds}s"


def format_time_remaining(total_ms: int) -> str:
    """Describe remaining time until expiry.

    Args:
        total_ms: Remaining time in milliseconds, negative when expired

    Returns:
        str: ``"Expired"`` or ``"2 days 5 hours remaining"``
    """
    if total_ms < 0:
        return "Expired"

    days, hours = split_days_hours(total_ms)
    if days > 0:
        day_word = "day" if days == 1 else "days"
        return f"{days} {day_word} {hours} hours remaining"
    return f"{hours} hours remaining"
