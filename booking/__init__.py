"""Slot availability and booking conflict resolution."""

from .clock import Clock, FixedClock, SystemClock, TimeZoneClock
from .completion import derive_completed, has_elapsed
from .conflicts import BookingConflictChecker, BookingRequest, is_owner_booking
from .rules import AvailabilityRules, merge_intervals
from .slots import compute_slots, find_slot
from .transaction import BookingTransaction

__all__ = [
    "AvailabilityRules",
    "BookingConflictChecker",
    "BookingRequest",
    "BookingTransaction",
    "Clock",
    "FixedClock",
    "SystemClock",
    "TimeZoneClock",
    "compute_slots",
    "derive_completed",
    "find_slot",
    "has_elapsed",
    "is_owner_booking",
    "merge_intervals",
]
