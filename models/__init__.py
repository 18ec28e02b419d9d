"""Pydantic models for data validation and serialization."""

from .appointment import (
    Appointment,
    AppointmentReschedule,
    AppointmentStatus,
    CancelledBy,
    CustomerIdentity,
    customer_id_for,
)
from .availability import (
    BusinessAvailability,
    DateOverride,
    DaySchedule,
    TimeInterval,
    TimeRange,
)
from .business import BookingPolicy, BusinessConfig
from .results import (
    BookingErrorCode,
    BookingFailure,
    ConflictCode,
    ConflictResult,
    WriteResult,
    WriteStatus,
)
from .service import Service
from .slot import Slot

__all__ = [
    "Appointment",
    "AppointmentReschedule",
    "AppointmentStatus",
    "BookingErrorCode",
    "BookingFailure",
    "BookingPolicy",
    "BusinessAvailability",
    "BusinessConfig",
    "CancelledBy",
    "ConflictCode",
    "ConflictResult",
    "CustomerIdentity",
    "DateOverride",
    "DaySchedule",
    "Service",
    "Slot",
    "TimeInterval",
    "TimeRange",
    "WriteResult",
    "WriteStatus",
    "customer_id_for",
]
