"""
Pytest configuration and shared fixtures.

Time is pinned to 2026-01-14 12:00 UTC, a Wednesday. The sample business
runs on Asia/Jerusalem (UTC+2 in January), so business-local "now" is
2026-01-14 14:00.

Sample week: Sunday to Thursday 09:00-12:00 and 13:00-17:00, Friday
09:00-13:00 (stored in the legacy single-range form), Saturday closed.
"""

from datetime import datetime, timezone

import pytest

from booking.clock import FixedClock
from booking.transaction import BookingTransaction
from config import settings
from db import reset_repositories
from db.memory_store import InMemoryAppointmentRepository, InMemoryBusinessRepository
from models.appointment import Appointment, AppointmentStatus, CustomerIdentity, customer_id_for
from models.availability import BusinessAvailability, DaySchedule, TimeRange
from models.business import BookingPolicy, BusinessConfig
from models.service import Service
from utils.datetime_utils import parse_time_to_minutes

BUSINESS_ID = "biz_1"


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Deterministic settings for all tests."""
    monkeypatch.setattr(settings, "storage_backend", "memory")
    monkeypatch.setattr(settings, "default_timezone", "UTC")
    monkeypatch.setattr(settings, "max_booking_days_ahead", 365)
    reset_repositories()
    yield settings
    reset_repositories()


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2026-01-14 12:00 UTC."""
    return FixedClock(datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc))


def _build_availability() -> BusinessAvailability:
    split_day = [TimeRange(start="09:00", end="12:00"), TimeRange(start="13:00", end="17:00")]
    days = [DaySchedule(day=day, enabled=True, ranges=split_day) for day in range(0, 5)]
    days.append(DaySchedule(day=5, enabled=True, start="09:00", end="13:00"))
    days.append(DaySchedule(day=6, enabled=False))
    return BusinessAvailability(timezone="Asia/Jerusalem", days=days)


def _build_business(limit_one_upcoming: bool = False) -> BusinessConfig:
    return BusinessConfig(
        id=BUSINESS_ID,
        name="Calm Coaching",
        owner_email="Owner@Example.com",
        availability=_build_availability(),
        policy=BookingPolicy(
            limit_customer_to_one_upcoming_appointment=limit_one_upcoming
        ),
        services=[
            Service(id="svc_30", name="Check-in", duration_minutes=30),
            Service(id="svc_60", name="Full session", duration_minutes=60),
            Service(id="svc_off", name="Retired", duration_minutes=30, is_active=False),
            Service(id="svc_bad", name="Broken", duration_minutes=0),
        ],
    )


def _customer(name: str) -> CustomerIdentity:
    return CustomerIdentity(email=f"{name}@example.com", full_name=name.title())


def _appointment(
    start_time: str,
    end_time: str,
    date: str = "2026-01-15",
    customer: str = "dana",
    service_id: str = "svc_30",
    status: AppointmentStatus = AppointmentStatus.BOOKED,
    appointment_id: str = None,
    business_id: str = BUSINESS_ID,
) -> Appointment:
    identity = _customer(customer)
    duration = parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)
    return Appointment(
        id=appointment_id,
        business_id=business_id,
        customer_id=customer_id_for(business_id, identity.email),
        customer=identity,
        service_id=service_id,
        service_name=service_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=duration,
        status=status,
    )


@pytest.fixture
def availability():
    """Sample weekly availability."""
    return _build_availability()


@pytest.fixture
def business_factory():
    """Build the sample business with a chosen booking policy."""
    return _build_business


@pytest.fixture
def business():
    """Sample business with the one-upcoming-appointment limit off."""
    return _build_business()


@pytest.fixture
def make_customer():
    """Build a customer identity from a first name."""
    return _customer


@pytest.fixture
def make_appointment():
    """Build an appointment for the sample business."""
    return _appointment


@pytest.fixture
def appointment_repo():
    return InMemoryAppointmentRepository()


@pytest.fixture
def business_repo(business):
    return InMemoryBusinessRepository([business])


@pytest.fixture
def transaction(appointment_repo, business_repo, fixed_clock):
    """BookingTransaction over in-memory stores with a fixed clock."""
    return BookingTransaction(appointment_repo, business_repo, clock=fixed_clock)
