"""
Booking transaction: create, reschedule and cancel appointments.

Every commit re-reads the day's bookings, recomputes the slots and only
then asks the store for a conditional write. The recomputation catches
most stale requests early with a clear message; the conditional write is
what actually guarantees no double booking when two requests race past
the recomputation together.
"""

from typing import List, Optional, Tuple, Union

from booking.clock import Clock, TimeZoneClock, add_days
from booking.completion import derive_completed
from booking.conflicts import BookingConflictChecker, BookingRequest
from booking.rules import AvailabilityRules
from booking.slots import booked_intervals_from, compute_slots, find_slot
from config import settings
from db.repository import AppointmentRepository, BusinessConfigRepository
from models.appointment import (
    Appointment,
    AppointmentReschedule,
    AppointmentStatus,
    CancelledBy,
    CustomerIdentity,
)
from models.business import BusinessConfig
from models.results import (
    BookingErrorCode,
    BookingFailure,
    ConflictResult,
    WriteStatus,
)
from models.slot import Slot
from utils.constants import APPOINTMENTS_LIST_LIMIT
from utils.exceptions import ValidationError
from utils.logging_config import setup_logging
from utils.validation import sanitize_text, validate_date_string, validate_time_string

logger = setup_logging(name=__name__, log_file="booking.log")

MAX_NOTES_LENGTH = 1000

# Statuses the business owner may set by hand on a BOOKED appointment
OWNER_SETTABLE_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW)

_WRITE_FAILURES = {
    WriteStatus.CONFLICT: BookingErrorCode.SLOT_NO_LONGER_AVAILABLE,
    WriteStatus.NOT_FOUND: BookingErrorCode.APPOINTMENT_NOT_FOUND,
    WriteStatus.NOT_BOOKED: BookingErrorCode.NOT_BOOKED,
}


def _failure(code: BookingErrorCode) -> BookingFailure:
    return BookingFailure.of(code)


class BookingTransaction:
    """
    Booking operations exposed to the HTTP/UI layer.

    Args:
        appointments: Appointment storage
        businesses: Business settings storage
        clock: Source of "now"; SystemClock when omitted
        conflict_checker: Policy checker; default BookingConflictChecker
        max_days_ahead: Booking horizon in days, 0 for none;
            settings.max_booking_days_ahead when omitted
    """

    def __init__(
        self,
        appointments: AppointmentRepository,
        businesses: BusinessConfigRepository,
        clock: Optional[Clock] = None,
        conflict_checker: Optional[BookingConflictChecker] = None,
        max_days_ahead: Optional[int] = None,
    ):
        self.appointments = appointments
        self.businesses = businesses
        self.tz_clock = TimeZoneClock(clock)
        self.conflict_checker = conflict_checker or BookingConflictChecker()
        if max_days_ahead is None:
            max_days_ahead = settings.max_booking_days_ahead
        self.max_days_ahead = max_days_ahead

    # ========== Helpers ==========

    def _timezone(self, business: BusinessConfig) -> str:
        return business.availability.timezone or settings.default_timezone

    def _local_now(self, business: BusinessConfig) -> Tuple[str, str]:
        timezone = self._timezone(business)
        return self.tz_clock.today_and_now(timezone)

    def _beyond_horizon(self, date: str, today_str: str) -> bool:
        if not self.max_days_ahead or self.max_days_ahead <= 0:
            return False
        return date > add_days(today_str, self.max_days_ahead)

    async def _fresh_slots(
        self,
        business: BusinessConfig,
        date: str,
        duration_minutes: int,
        today_str: str,
        now_time_str: str,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Slot]:
        rules = AvailabilityRules(business.availability)
        booked = await self.appointments.find_booked_for_date(
            business.id, date, exclude_appointment_id=exclude_appointment_id
        )
        return compute_slots(
            date=date,
            duration_minutes=duration_minutes,
            open_intervals=rules.open_intervals_for(date),
            booked_intervals=booked_intervals_from(booked),
            today_str=today_str,
            now_time_str=now_time_str,
        )

    async def _complete_if_elapsed(
        self, appointment: Appointment, today_str: str, now_time_str: str
    ) -> Appointment:
        """Apply the completion rule to one appointment and persist it."""
        rows, completed_ids = derive_completed([appointment], today_str, now_time_str)
        if not completed_ids:
            return appointment

        changed = await self.appointments.mark_completed(completed_ids)
        if not changed:
            current = await self.appointments.find_by_id(appointment.id)
            return current or appointment
        logger.info(f"Completed elapsed appointment on access: id={appointment.id}")
        return rows[0]

    async def _customer_appointments(
        self, business_id: str, customer_id: str, today_str: str
    ) -> List[Appointment]:
        return await self.appointments.find_upcoming_for_customer(
            business_id, customer_id, from_date=today_str
        )

    # ========== Slots ==========

    async def get_available_slots(
        self, business_id: str, date: str, service_id: str
    ) -> Union[List[Slot], BookingFailure]:
        """
        Bookable slots for a service on a business-local date.

        Past dates return an empty list; today only lists slots starting
        after business-local now.
        """
        if not validate_date_string(date):
            return _failure(BookingErrorCode.INVALID_DATE)

        business = await self.businesses.require_business(business_id)
        service = business.get_service(service_id)
        if service is None or not service.is_active:
            return _failure(BookingErrorCode.SERVICE_NOT_FOUND)

        today_str, now_time_str = self._local_now(business)
        if self._beyond_horizon(date, today_str):
            return _failure(BookingErrorCode.INVALID_DATE)
        if date < today_str:
            return []

        return await self._fresh_slots(
            business, date, service.duration_minutes, today_str, now_time_str
        )

    # ========== Create ==========

    async def create_booking(
        self,
        business_id: str,
        date: str,
        start_time: str,
        service_id: str,
        customer: CustomerIdentity,
        notes: Optional[str] = None,
    ) -> Union[Appointment, ConflictResult, BookingFailure]:
        """
        Book a slot for a customer.

        Returns:
            The stored Appointment; a ConflictResult when a booking policy
            rejects the request; or a BookingFailure (INVALID_DATE,
            INVALID_TIME, SERVICE_NOT_FOUND, SLOT_NO_LONGER_AVAILABLE)
        """
        if not validate_date_string(date):
            return _failure(BookingErrorCode.INVALID_DATE)
        if not validate_time_string(start_time):
            return _failure(BookingErrorCode.INVALID_TIME)

        business = await self.businesses.require_business(business_id)
        service = business.get_service(service_id)
        if service is None or not service.is_active:
            return _failure(BookingErrorCode.SERVICE_NOT_FOUND)

        try:
            customer_id = customer.resolve_id(business.id)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        today_str, now_time_str = self._local_now(business)
        if self._beyond_horizon(date, today_str):
            return _failure(BookingErrorCode.INVALID_DATE)

        slots = await self._fresh_slots(
            business, date, service.duration_minutes, today_str, now_time_str
        )
        slot = find_slot(slots, start_time)
        if slot is None:
            logger.warning(
                f"Slot no longer available: business={business.id} "
                f"date={date} start={start_time} service={service.id}"
            )
            return _failure(BookingErrorCode.SLOT_NO_LONGER_AVAILABLE)

        request = BookingRequest(
            business_id=business.id,
            date=date,
            start_time=start_time,
            service_id=service.id,
            customer=customer,
        )
        existing = await self._customer_appointments(business.id, customer_id, today_str)
        conflict = self.conflict_checker.check(
            request,
            existing,
            business.policy,
            owner_email=business.owner_email,
            today_str=today_str,
            now_time_str=now_time_str,
        )
        if not conflict.ok:
            logger.info(
                f"Booking rejected by policy {conflict.code.value}: "
                f"business={business.id} customer={customer_id}"
            )
            return conflict

        appointment = Appointment(
            business_id=business.id,
            customer_id=customer_id,
            customer=customer,
            service_id=service.id,
            service_name=service.name.strip(),
            date=date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            duration_minutes=service.duration_minutes,
            status=AppointmentStatus.BOOKED,
            notes=sanitize_text(notes, MAX_NOTES_LENGTH) or None,
            created_at=self.tz_clock.clock.now(),
        )

        result = await self.appointments.insert_if_no_overlap(appointment)
        if not result.ok:
            logger.warning(
                f"Booking lost race at commit: business={business.id} "
                f"date={date} start={start_time}"
            )
            return _failure(_WRITE_FAILURES[result.status])

        logger.info(
            f"Appointment booked: id={result.appointment.id} business={business.id} "
            f"date={date} {slot.start_time}-{slot.end_time}"
        )
        return result.appointment

    # ========== Reschedule ==========

    async def reschedule_booking(
        self, appointment_id: str, new_date: str, new_start_time: str
    ) -> Union[Appointment, ConflictResult, BookingFailure]:
        """
        Move a BOOKED appointment to a new date and start time.

        The appointment keeps its id and history. Its own current interval
        does not block the move, so shifting within an overlapping window
        is allowed.
        """
        if not validate_date_string(new_date):
            return _failure(BookingErrorCode.INVALID_DATE)
        if not validate_time_string(new_start_time):
            return _failure(BookingErrorCode.INVALID_TIME)

        appointment = await self.appointments.find_by_id(appointment_id)
        if appointment is None:
            return _failure(BookingErrorCode.APPOINTMENT_NOT_FOUND)

        business = await self.businesses.require_business(appointment.business_id)
        today_str, now_time_str = self._local_now(business)

        appointment = await self._complete_if_elapsed(appointment, today_str, now_time_str)
        if not appointment.is_booked:
            return _failure(BookingErrorCode.NOT_BOOKED)

        if new_date < today_str or (
            new_date == today_str and new_start_time <= now_time_str
        ):
            return _failure(BookingErrorCode.PAST_DATE)
        if self._beyond_horizon(new_date, today_str):
            return _failure(BookingErrorCode.INVALID_DATE)

        slots = await self._fresh_slots(
            business,
            new_date,
            appointment.duration_minutes,
            today_str,
            now_time_str,
            exclude_appointment_id=appointment.id,
        )
        slot = find_slot(slots, new_start_time)
        if slot is None:
            logger.warning(
                f"Reschedule target no longer available: id={appointment.id} "
                f"date={new_date} start={new_start_time}"
            )
            return _failure(BookingErrorCode.SLOT_NO_LONGER_AVAILABLE)

        request = BookingRequest(
            business_id=business.id,
            date=new_date,
            start_time=new_start_time,
            service_id=appointment.service_id,
            customer=appointment.customer,
        )
        existing = await self._customer_appointments(
            business.id, appointment.customer_id, today_str
        )
        conflict = self.conflict_checker.check(
            request,
            existing,
            business.policy,
            owner_email=business.owner_email,
            today_str=today_str,
            now_time_str=now_time_str,
            exclude_appointment_id=appointment.id,
        )
        if not conflict.ok:
            logger.info(
                f"Reschedule rejected by policy {conflict.code.value}: id={appointment.id}"
            )
            return conflict

        patch = AppointmentReschedule(
            date=new_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            rescheduled_at=self.tz_clock.clock.now(),
        )
        result = await self.appointments.update_if_no_overlap(
            appointment.id, patch, exclude_self=True
        )
        if not result.ok:
            logger.warning(
                f"Reschedule failed at commit ({result.status.value}): id={appointment.id}"
            )
            return _failure(_WRITE_FAILURES[result.status])

        logger.info(
            f"Appointment rescheduled: id={appointment.id} "
            f"{appointment.date} {appointment.start_time} -> {new_date} {slot.start_time}"
        )
        return result.appointment

    # ========== Cancel & Status ==========

    async def cancel_booking(
        self, appointment_id: str, by: CancelledBy = CancelledBy.CUSTOMER
    ) -> Union[Appointment, BookingFailure]:
        """
        Cancel a BOOKED appointment.

        Cancelling an already cancelled appointment succeeds and returns it
        unchanged.
        """
        appointment = await self.appointments.find_by_id(appointment_id)
        if appointment is None:
            return _failure(BookingErrorCode.APPOINTMENT_NOT_FOUND)
        if appointment.status == AppointmentStatus.CANCELLED:
            return appointment

        business = await self.businesses.require_business(appointment.business_id)
        today_str, now_time_str = self._local_now(business)

        appointment = await self._complete_if_elapsed(appointment, today_str, now_time_str)
        if not appointment.is_booked:
            return _failure(BookingErrorCode.NOT_BOOKED)

        cancelled = await self.appointments.mark_cancelled(
            appointment_id, by, self.tz_clock.clock.now()
        )
        if cancelled is None:
            # Changed between our read and the write
            current = await self.appointments.find_by_id(appointment_id)
            if current is None:
                return _failure(BookingErrorCode.APPOINTMENT_NOT_FOUND)
            if current.status == AppointmentStatus.CANCELLED:
                return current
            return _failure(BookingErrorCode.NOT_BOOKED)

        logger.info(f"Appointment cancelled: id={appointment_id} by={by.value}")
        return cancelled

    async def set_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Union[Appointment, BookingFailure]:
        """Owner marks a BOOKED appointment COMPLETED or NO_SHOW."""
        if status not in OWNER_SETTABLE_STATUSES:
            raise ValidationError(
                f"Status must be one of: "
                f"{', '.join(s.value for s in OWNER_SETTABLE_STATUSES)}"
            )

        appointment = await self.appointments.find_by_id(appointment_id)
        if appointment is None:
            return _failure(BookingErrorCode.APPOINTMENT_NOT_FOUND)
        if appointment.status == status:
            return appointment
        if not appointment.is_booked:
            return _failure(BookingErrorCode.NOT_BOOKED)

        updated = await self.appointments.set_status(appointment_id, status)
        if updated is None:
            return _failure(BookingErrorCode.NOT_BOOKED)

        logger.info(f"Appointment status set: id={appointment_id} status={status.value}")
        return updated

    # ========== Reads ==========

    async def list_appointments(
        self, business_id: str, date: str
    ) -> Union[List[Appointment], BookingFailure]:
        """
        Appointments of a business on a date, with elapsed BOOKED ones
        completed on the way out.
        """
        if not validate_date_string(date):
            return _failure(BookingErrorCode.INVALID_DATE)

        business = await self.businesses.require_business(business_id)
        today_str, now_time_str = self._local_now(business)

        rows = await self.appointments.find_for_date(business.id, date)
        rows, completed_ids = derive_completed(rows, today_str, now_time_str)
        if completed_ids:
            changed = await self.appointments.mark_completed(completed_ids)
            logger.info(
                f"Completed {changed} elapsed appointment(s) for business={business.id} date={date}"
            )
            if changed < len(completed_ids):
                # Some rows left BOOKED between the read and the update
                rows = await self.appointments.find_for_date(business.id, date)
                rows, _ = derive_completed(rows, today_str, now_time_str)
        return rows

    async def list_upcoming_for_customer(
        self, business_id: str, customer_id: str
    ) -> List[Appointment]:
        """BOOKED appointments of a customer that start after business-local now."""
        business = await self.businesses.require_business(business_id)
        today_str, now_time_str = self._local_now(business)

        rows = await self._customer_appointments(business.id, customer_id, today_str)
        upcoming = [row for row in rows if row.starts_after(today_str, now_time_str)]
        return upcoming[:APPOINTMENTS_LIST_LIMIT]
