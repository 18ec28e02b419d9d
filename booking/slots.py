"""
Slot computation.

Slots are packed back to back from the start of each open interval
(s, s+d, s+2d, ...) rather than snapped to a calendar grid, so two
offered slots never straddle the same busy period.

compute_slots is pure: it is called once to display slots and again at
commit time with fresh bookings, and both calls must agree on the same
inputs.
"""

import math
from numbers import Real
from typing import Iterable, List, Optional

from models.appointment import Appointment, AppointmentStatus
from models.availability import TimeInterval
from models.slot import Slot
from utils.datetime_utils import parse_time_to_minutes
from utils.validation import validate_date_string


def _valid_duration(duration_minutes) -> Optional[int]:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, Real):
        return None
    if not math.isfinite(duration_minutes) or duration_minutes <= 0:
        return None
    if int(duration_minutes) != duration_minutes:
        return None
    return int(duration_minutes)


def booked_intervals_from(appointments: Iterable[Appointment]) -> List[TimeInterval]:
    """Busy intervals of the BOOKED appointments in a list."""
    return [
        appointment.interval()
        for appointment in appointments
        if appointment.status == AppointmentStatus.BOOKED
    ]


def compute_slots(
    date: str,
    duration_minutes: int,
    open_intervals: Iterable[TimeInterval],
    booked_intervals: Iterable[TimeInterval],
    today_str: str,
    now_time_str: str,
) -> List[Slot]:
    """
    Valid start times for a service on a business-local date.

    Args:
        date: Requested date, "YYYY-MM-DD"
        duration_minutes: Service duration; non-positive, non-finite or
            fractional values yield no slots
        open_intervals: Business open intervals for the date
        booked_intervals: Busy [start, end) intervals for the date
        today_str: Business-local today, "YYYY-MM-DD"
        now_time_str: Business-local now, "HH:mm"

    Returns:
        Slots in ascending start order. Each lies inside one open interval,
        overlaps no booked interval, and on today starts strictly after now.
    """
    duration = _valid_duration(duration_minutes)
    if duration is None:
        return []
    if not validate_date_string(date) or not validate_date_string(today_str):
        return []
    if date < today_str:
        return []

    now_minutes = None
    if date == today_str:
        now_minutes = parse_time_to_minutes(now_time_str)
        if now_minutes is None:
            return []

    busy = list(booked_intervals)
    candidates = []

    for open_interval in sorted(open_intervals, key=lambda interval: interval.start):
        start = open_interval.start
        while start + duration <= open_interval.end:
            candidate = TimeInterval(start=start, end=start + duration)
            start += duration

            if any(candidate.overlaps(booked) for booked in busy):
                continue
            if now_minutes is not None and candidate.start <= now_minutes:
                continue
            candidates.append(candidate)

    candidates.sort(key=lambda interval: interval.start)
    return [Slot.from_interval(candidate) for candidate in candidates]


def find_slot(slots: Iterable[Slot], start_time: str) -> Optional[Slot]:
    """The slot starting at start_time, if offered."""
    for slot in slots:
        if slot.start_time == start_time:
            return slot
    return None
