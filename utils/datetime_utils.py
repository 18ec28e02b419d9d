"""
Datetime utilities for consistent time handling across the application.

Instants are timezone-aware UTC datetimes. Business-local calendar dates
and wall-clock times travel as "YYYY-MM-DD" and "HH:mm" strings, and are
converted to minutes-since-midnight for interval arithmetic.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional

from utils.constants import DATE_FORMAT

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """
    Convert datetime to ISO format string.
    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.isoformat()


def parse_time_to_minutes(hhmm: str) -> Optional[int]:
    """
    Convert an "H:mm" / "HH:mm" wall-clock string to minutes since midnight.

    Returns None for anything that is not a valid 24h time, so callers can
    skip bad configuration instead of failing the whole day.
    """
    match = _TIME_RE.match(str(hhmm if hhmm is not None else ""))
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def minutes_to_time(total_minutes: int) -> str:
    """Format minutes since midnight as zero-padded "HH:mm"."""
    hours, minutes = divmod(int(total_minutes), 60)
    return f"{hours:02d}:{minutes:02d}"


def parse_date(date_str: str) -> Optional[date]:
    """Parse a "YYYY-MM-DD" calendar date; None if malformed."""
    try:
        return datetime.strptime(str(date_str), DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def format_date(value: date) -> str:
    """Format a calendar date as "YYYY-MM-DD"."""
    return value.strftime(DATE_FORMAT)


def weekday_for_date(date_str: str) -> Optional[int]:
    """
    Weekday of a calendar date string, 0=Sunday .. 6=Saturday.

    The date is already business-local, so no timezone shift is applied.
    """
    parsed = parse_date(date_str)
    if parsed is None:
        return None
    # Python: Monday=0 .. Sunday=6
    return (parsed.weekday() + 1) % 7
