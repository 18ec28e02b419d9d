"""
Clock abstractions and business-local time formatting.

Every "is this in the past" decision goes through TimeZoneClock so that an
invalid timezone on one business degrades to UTC instead of breaking
booking for that tenant.
"""

import calendar
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Tuple

import pytz

from utils.constants import DATE_FORMAT, FALLBACK_TIMEZONE, TIME_FORMAT
from utils.datetime_utils import format_date, parse_date, utc_now

logger = logging.getLogger(__name__)


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall clock of the running process, in UTC."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock(Clock):
    """Clock pinned to a given instant; used by tests and replays."""

    def __init__(self, instant: datetime):
        self._instant = self._aware(instant)

    @staticmethod
    def _aware(instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return pytz.UTC.localize(instant)
        return instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = self._aware(instant)

    def advance(self, **kwargs) -> None:
        """Move forward by timedelta(**kwargs)."""
        self._instant = self._instant + timedelta(**kwargs)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Return the pytz zone for an IANA name, or UTC.

    Empty names silently mean UTC; unknown names are logged and also
    mean UTC. Never raises.
    """
    tz_name = str(name if name is not None else "").strip()
    if not tz_name:
        return pytz.UTC

    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Invalid timezone '{tz_name}', using {FALLBACK_TIMEZONE}")
        return pytz.UTC


class TimeZoneClock:
    """Formats the injected clock's "now" in a business's timezone."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def local_now(self, timezone: Optional[str]) -> datetime:
        return self.clock.now().astimezone(resolve_timezone(timezone))

    def today(self, timezone: Optional[str]) -> str:
        """Current business-local date, "YYYY-MM-DD"."""
        return self.local_now(timezone).strftime(DATE_FORMAT)

    def now_time(self, timezone: Optional[str]) -> str:
        """Current business-local wall-clock time, 24h "HH:mm"."""
        return self.local_now(timezone).strftime(TIME_FORMAT)

    def today_and_now(self, timezone: Optional[str]) -> Tuple[str, str]:
        """
        Business-local ("YYYY-MM-DD", "HH:mm") from a single clock reading.

        Two separate reads can straddle midnight and pair yesterday's date
        with today's "00:00".
        """
        local = self.local_now(timezone)
        return local.strftime(DATE_FORMAT), local.strftime(TIME_FORMAT)


# ========== Calendar Arithmetic ==========
# Pure date math on calendar dates; no time of day, so DST never applies.


def _require_date(date_str: str) -> date:
    parsed = parse_date(date_str)
    if parsed is None:
        raise ValueError(f"Invalid date string: {date_str!r}")
    return parsed


def add_days(date_str: str, n: int) -> str:
    return format_date(_require_date(date_str) + timedelta(days=n))


def add_months(date_str: str, n: int) -> str:
    """Shift by n months, clamping the day to the target month's length."""
    current = _require_date(date_str)
    month_index = current.year * 12 + (current.month - 1) + n
    year, month = divmod(month_index, 12)
    month += 1
    day = min(current.day, calendar.monthrange(year, month)[1])
    return format_date(date(year, month, day))


def start_of_month(date_str: str) -> str:
    return format_date(_require_date(date_str).replace(day=1))


def end_of_month(date_str: str) -> str:
    current = _require_date(date_str)
    last_day = calendar.monthrange(current.year, current.month)[1]
    return format_date(current.replace(day=last_day))


def month_dates(date_str: str) -> list:
    """All dates of the month containing date_str, in order."""
    first = _require_date(start_of_month(date_str))
    last = _require_date(end_of_month(date_str))
    return [format_date(first + timedelta(days=i)) for i in range((last - first).days + 1)]
