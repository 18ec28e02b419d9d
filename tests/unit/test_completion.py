"""
Unit tests for lazy completion of elapsed appointments.
"""

from booking.completion import derive_completed, has_elapsed
from models.appointment import AppointmentStatus

TODAY = "2026-01-14"


def test_has_elapsed(make_appointment):
    """Test elapsed means the end is at or before now."""
    assert has_elapsed(make_appointment("09:00", "09:30", date="2026-01-13"), TODAY, "00:00")
    assert has_elapsed(make_appointment("13:00", "14:00", date=TODAY), TODAY, "14:00")
    assert not has_elapsed(make_appointment("13:30", "14:30", date=TODAY), TODAY, "14:00")
    assert not has_elapsed(make_appointment("09:00", "09:30", date="2026-01-15"), TODAY, "23:59")


def test_derive_completed_flips_only_elapsed_booked(make_appointment):
    """Test only BOOKED appointments that ended are completed."""
    ended = make_appointment("09:00", "09:30", date=TODAY, appointment_id="ended")
    running = make_appointment("13:30", "14:30", date=TODAY, appointment_id="running")
    cancelled = make_appointment(
        "10:00", "10:30", date=TODAY, appointment_id="cancelled",
        status=AppointmentStatus.CANCELLED,
    )
    no_show = make_appointment(
        "11:00", "11:30", date=TODAY, appointment_id="no_show",
        status=AppointmentStatus.NO_SHOW,
    )

    result, changed = derive_completed([ended, running, cancelled, no_show], TODAY, "14:00")

    assert changed == ["ended"]
    assert [a.status for a in result] == [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.BOOKED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ]
    # Inputs are not mutated
    assert ended.status == AppointmentStatus.BOOKED


def test_derive_completed_is_idempotent(make_appointment):
    """Test running the sweep twice changes nothing the second time."""
    appointments = [make_appointment("09:00", "09:30", date=TODAY, appointment_id="a1")]

    first, changed = derive_completed(appointments, TODAY, "14:00")
    second, changed_again = derive_completed(first, TODAY, "14:00")

    assert changed == ["a1"]
    assert changed_again == []
    assert second == first
