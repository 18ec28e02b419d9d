"""
Availability rules: resolve a business's open intervals for one date.

Weekly hours are normalized once (sorted, overlapping and adjacent ranges
merged). Per-date exceptions come in through an injected resolver so the
slot computation never needs to know about them.
"""

from typing import Callable, Dict, Iterable, List, Optional

from models.availability import BusinessAvailability, DateOverride, TimeInterval, TimeRange
from utils.datetime_utils import weekday_for_date

# Returns the open intervals for a specific date, or None to fall back
# to the weekly hours.
DateResolver = Callable[[str], Optional[List[TimeInterval]]]


def merge_intervals(intervals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """Sort by start and merge intervals that overlap or touch."""
    ordered = sorted(intervals, key=lambda interval: (interval.start, interval.end))
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeInterval(start=last.start, end=current.end)
        else:
            merged.append(current)
    return merged


def intervals_from_ranges(ranges: Iterable[TimeRange]) -> List[TimeInterval]:
    """Convert raw ranges, skipping unparseable or empty ones."""
    intervals = []
    for time_range in ranges:
        interval = time_range.to_interval()
        if interval is not None:
            intervals.append(interval)
    return intervals


def overrides_resolver(overrides: Iterable[DateOverride]) -> DateResolver:
    """Resolver backed by a business's DateOverride list."""
    by_date: Dict[str, DateOverride] = {}
    for override in overrides:
        by_date[override.date] = override

    def resolve(date_str: str) -> Optional[List[TimeInterval]]:
        override = by_date.get(date_str)
        if override is None:
            return None
        if override.closed:
            return []
        return intervals_from_ranges(override.ranges)

    return resolve


class AvailabilityRules:
    """Weekly hours plus optional per-date resolver for one business."""

    def __init__(
        self,
        availability: BusinessAvailability,
        date_resolver: Optional[DateResolver] = None,
    ):
        self.timezone = availability.timezone
        self.weekly_hours: Dict[int, List[TimeInterval]] = {}

        for day in availability.days:
            if not day.enabled:
                continue
            intervals = intervals_from_ranges(day.effective_ranges())
            # A weekday listed twice contributes both sets of ranges
            existing = self.weekly_hours.get(day.day, [])
            self.weekly_hours[day.day] = merge_intervals(existing + intervals)

        if date_resolver is None and availability.overrides:
            date_resolver = overrides_resolver(availability.overrides)
        self.date_resolver = date_resolver

    def open_intervals_for(self, date_str: str) -> List[TimeInterval]:
        """
        Open intervals for a business-local date, ascending and merged.

        An unset weekday, a disabled weekday or an unparseable date all
        mean the business is closed: an empty list, never an error.
        """
        if self.date_resolver is not None:
            resolved = self.date_resolver(date_str)
            if resolved is not None:
                return merge_intervals(resolved)

        weekday = weekday_for_date(date_str)
        if weekday is None:
            return []
        return list(self.weekly_hours.get(weekday, []))
