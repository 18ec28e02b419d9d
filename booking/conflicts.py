"""
Booking conflict checks: customer-facing policy rules.

Conflicts are data. The checker never raises for an expected rejection;
it returns the conflicting appointments so the caller can offer to cancel
them in the same flow.
"""

from typing import Iterable, List, Optional

from pydantic import BaseModel

from models.appointment import Appointment, AppointmentStatus, CustomerIdentity
from models.business import BookingPolicy
from models.results import ConflictCode, ConflictResult
from utils.validation import normalize_email


class BookingRequest(BaseModel):
    """What the customer asked for."""

    business_id: str
    date: str
    start_time: str
    service_id: str
    customer: CustomerIdentity


def is_owner_booking(customer: CustomerIdentity, owner_email: Optional[str]) -> bool:
    """The business owner booking through their own public page."""
    owner = normalize_email(owner_email)
    return bool(owner) and normalize_email(customer.email) == owner


class BookingConflictChecker:
    """Applies the business's booking policy to a request."""

    def check(
        self,
        request: BookingRequest,
        existing_appointments: Iterable[Appointment],
        policy: BookingPolicy,
        owner_email: Optional[str] = None,
        today_str: str = "",
        now_time_str: str = "",
        exclude_appointment_id: Optional[str] = None,
    ) -> ConflictResult:
        """
        Check a request against the customer's existing appointments.

        Args:
            request: The booking being attempted
            existing_appointments: The customer's appointments with this business
            policy: Business booking policy
            owner_email: Business owner's account email; an owner booking
                skips every customer-facing rule
            today_str: Business-local today, "YYYY-MM-DD"
            now_time_str: Business-local now, "HH:mm"
            exclude_appointment_id: Appointment being rescheduled, ignored

        Returns:
            ConflictResult.allowed(), or a rejection with its code and the
            appointments that caused it
        """
        if is_owner_booking(request.customer, owner_email):
            return ConflictResult.allowed()

        booked: List[Appointment] = [
            appointment
            for appointment in existing_appointments
            if appointment.status == AppointmentStatus.BOOKED
            and appointment.business_id == request.business_id
            and (exclude_appointment_id is None or appointment.id != exclude_appointment_id)
        ]

        if policy.limit_customer_to_one_upcoming_appointment:
            upcoming = [
                appointment
                for appointment in booked
                if appointment.starts_after(today_str, now_time_str)
            ]
            if upcoming:
                return ConflictResult.rejected(
                    ConflictCode.ACTIVE_APPOINTMENT_EXISTS, upcoming
                )

        same_day = [
            appointment
            for appointment in booked
            if appointment.service_id == request.service_id
            and appointment.date == request.date
        ]
        if same_day:
            return ConflictResult.rejected(
                ConflictCode.SAME_SERVICE_SAME_DAY_EXISTS, same_day
            )

        return ConflictResult.allowed()
