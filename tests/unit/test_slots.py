"""
Unit tests for slot computation.
"""

import math

import pytest

from booking.slots import booked_intervals_from, compute_slots, find_slot
from models.appointment import AppointmentStatus
from models.availability import TimeInterval

TODAY = "2026-01-14"
THURSDAY = "2026-01-15"

OPEN = [TimeInterval.from_strings("09:00", "12:00"), TimeInterval.from_strings("13:00", "17:00")]


def starts(slots):
    return [slot.start_time for slot in slots]


def slots_for(duration, booked=(), date=THURSDAY, now="14:00", open_intervals=OPEN):
    return compute_slots(
        date=date,
        duration_minutes=duration,
        open_intervals=open_intervals,
        booked_intervals=list(booked),
        today_str=TODAY,
        now_time_str=now,
    )


class TestComputeSlots:
    """Tests for compute_slots."""

    def test_packs_from_interval_start(self):
        """Test slots are packed back to back inside each interval."""
        result = slots_for(30)

        assert len(result) == 14
        assert starts(result)[:3] == ["09:00", "09:30", "10:00"]
        assert result[-1].start_time == "16:30"
        assert result[-1].end_time == "17:00"

    def test_packing_does_not_snap_to_grid(self):
        """Test a 45 minute service packs at 45 minute steps."""
        result = slots_for(45)

        assert starts(result) == [
            "09:00", "09:45", "10:30", "11:15",
            "13:00", "13:45", "14:30", "15:15", "16:00",
        ]

    def test_fit_boundary(self):
        """Test a slot must fit entirely inside the open interval."""
        window = [TimeInterval.from_strings("09:00", "09:45")]

        assert slots_for(60, open_intervals=window) == []
        assert starts(slots_for(45, open_intervals=window)) == ["09:00"]

    def test_booked_interval_removes_overlapping_candidates(self):
        """Test a booking blocks every candidate it intersects."""
        booked = [TimeInterval.from_strings("09:15", "09:45")]
        result = slots_for(30, booked=booked)

        assert "09:00" not in starts(result)
        assert "09:30" not in starts(result)
        assert "10:00" in starts(result)
        assert len(result) == 12

    def test_adjacent_booking_does_not_block(self):
        """Test [09:30, 10:00) leaves 09:00 and 10:00 bookable."""
        booked = [TimeInterval.from_strings("09:30", "10:00")]
        result = starts(slots_for(30, booked=booked))

        assert "09:00" in result
        assert "09:30" not in result
        assert "10:00" in result

    def test_today_only_future_starts(self):
        """Test today's slots start strictly after now."""
        assert starts(slots_for(30, date=TODAY, now="14:00")) == [
            "14:30", "15:00", "15:30", "16:00", "16:30",
        ]
        assert "14:00" in starts(slots_for(30, date=TODAY, now="13:59"))

    def test_past_date_has_no_slots(self):
        """Test dates before today return nothing."""
        assert slots_for(30, date="2026-01-13") == []

    def test_invalid_date_has_no_slots(self):
        """Test malformed dates return nothing."""
        assert slots_for(30, date="2026-01-32") == []

    def test_invalid_now_on_today(self):
        """Test an unusable now on today returns nothing."""
        assert slots_for(30, date=TODAY, now="later") == []

    @pytest.mark.parametrize("duration", [0, -30, 30.5, math.nan, math.inf, True, "30", None])
    def test_invalid_duration(self, duration):
        """Test non-positive, non-finite and fractional durations yield no slots."""
        assert slots_for(duration) == []

    def test_integral_float_duration(self):
        """Test 30.0 behaves like 30."""
        assert starts(slots_for(30.0)) == starts(slots_for(30))

    def test_every_slot_is_valid(self):
        """Test each returned slot fits, is free and lies in the future."""
        booked = [
            TimeInterval.from_strings("14:10", "14:50"),
            TimeInterval.from_strings("16:00", "16:20"),
        ]
        result = slots_for(20, booked=booked, date=TODAY, now="13:30")

        assert result
        assert starts(result) == sorted(starts(result))
        for slot in result:
            candidate = TimeInterval.from_strings(slot.start_time, slot.end_time)
            assert candidate.length == 20
            assert any(open_interval.contains(candidate) for open_interval in OPEN)
            assert not any(candidate.overlaps(busy) for busy in booked)
            assert slot.start_time > "13:30"


def test_booked_intervals_ignore_inactive(make_appointment):
    """Test only BOOKED appointments become busy intervals."""
    appointments = [
        make_appointment("09:00", "09:30"),
        make_appointment("10:00", "10:30", status=AppointmentStatus.CANCELLED),
        make_appointment("11:00", "11:30", status=AppointmentStatus.COMPLETED),
    ]
    assert booked_intervals_from(appointments) == [TimeInterval.from_strings("09:00", "09:30")]


def test_find_slot():
    """Test looking up an offered start time."""
    result = slots_for(30)
    assert find_slot(result, "13:30").end_time == "14:00"
    assert find_slot(result, "12:00") is None


def test_single_hour_window():
    """Test an hour window yields two half-hour slots, minus a booked one."""
    window = [TimeInterval.from_strings("09:00", "10:00")]

    free = slots_for(30, open_intervals=window)
    assert [(s.start_time, s.end_time) for s in free] == [("09:00", "09:30"), ("09:30", "10:00")]

    booked = [TimeInterval.from_strings("09:30", "10:00")]
    remaining = slots_for(30, booked=booked, open_intervals=window)
    assert [(s.start_time, s.end_time) for s in remaining] == [("09:00", "09:30")]
