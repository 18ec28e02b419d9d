"""Appointment models for booked sessions."""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.availability import TimeInterval
from utils.datetime_utils import parse_time_to_minutes
from utils.validation import (
    normalize_email,
    validate_date_string,
    validate_email,
    validate_time_string,
)


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class CancelledBy(str, Enum):
    """Who cancelled an appointment."""

    CUSTOMER = "CUSTOMER"
    BUSINESS = "BUSINESS"


def customer_id_for(business_id: str, email: str) -> str:
    """Stable per-business customer id derived from a normalized email."""
    key = f"{business_id}:{normalize_email(email)}".encode("utf-8")
    return hashlib.sha256(key).hexdigest()[:24]


class CustomerIdentity(BaseModel):
    """Identity of the person booking, as verified by the auth layer."""

    id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) or None

    def resolve_id(self, business_id: str) -> str:
        """Explicit id if given, otherwise derived from the email."""
        if self.id:
            return self.id
        if not self.email:
            raise ValueError("Customer identity needs an id or an email")
        if not validate_email(self.email):
            raise ValueError(f"Invalid customer email: {self.email!r}")
        return customer_id_for(business_id, self.email)


class Appointment(BaseModel):
    """Appointment model."""

    id: Optional[str] = None
    business_id: str
    customer_id: str
    customer: CustomerIdentity = Field(default_factory=CustomerIdentity)
    service_id: str
    service_name: str = ""
    date: str = Field(..., description="Business-local date, YYYY-MM-DD")
    start_time: str = Field(..., description="Business-local start, HH:mm")
    end_time: str = Field(..., description="Business-local end, HH:mm")
    duration_minutes: int = Field(..., gt=0)
    status: AppointmentStatus = AppointmentStatus.BOOKED
    cancelled_by: Optional[CancelledBy] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        if not validate_date_string(v):
            raise ValueError(f"Invalid appointment date: {v!r}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not validate_time_string(v):
            raise ValueError(f"Invalid appointment time: {v!r}")
        return v

    @model_validator(mode="after")
    def check_times(self) -> "Appointment":
        if self.end_time <= self.start_time:
            raise ValueError("Appointment must end after it starts")
        return self

    @property
    def is_booked(self) -> bool:
        return self.status == AppointmentStatus.BOOKED

    def interval(self) -> TimeInterval:
        return TimeInterval(
            start=parse_time_to_minutes(self.start_time),
            end=parse_time_to_minutes(self.end_time),
        )

    def overlaps(self, other: "Appointment") -> bool:
        """Same business, same date and intersecting [start, end)."""
        return (
            self.business_id == other.business_id
            and self.date == other.date
            and self.interval().overlaps(other.interval())
        )

    def starts_after(self, today_str: str, now_time_str: str) -> bool:
        """True when (date, start_time) is strictly after business-local now."""
        if self.date != today_str:
            return self.date > today_str
        return self.start_time > now_time_str

    class Config:
        json_schema_extra = {
            "example": {
                "business_id": "biz_123",
                "customer_id": "c0ffee",
                "customer": {"email": "dana@example.com", "full_name": "Dana Levi"},
                "service_id": "svc_intro",
                "service_name": "Intro session",
                "date": "2026-01-15",
                "start_time": "09:00",
                "end_time": "09:30",
                "duration_minutes": 30,
                "status": "BOOKED",
            }
        }


class AppointmentReschedule(BaseModel):
    """Patch applied to an appointment when it moves to a new slot."""

    date: str
    start_time: str
    end_time: str
    rescheduled_at: datetime
