"""
Supabase (PostgREST) storage for appointments and business settings.

The no-overlap rule is enforced by the database, not by this module: the
appointments table carries an exclusion constraint over
(business_id, date, [start_minute, end_minute)) for BOOKED rows (see
db/migrations/001_booking_schema.sql). An insert or update that would
double-book fails inside PostgreSQL with SQLSTATE 23P01, which is reported
here as a CONFLICT write result. Reading, computing slots and then writing
without that constraint would still double-book under concurrent requests.

Row Level Security (RLS) Notes:
==============================
This client uses the service_role key, which bypasses RLS. The public
booking surface must never hand this key to browsers; customer-facing
reads should go through RLS policies such as:

CREATE POLICY "Customers can view own appointments"
ON appointments FOR SELECT
USING (customer_id = auth.jwt() ->> 'customer_id');
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from db.repository import AppointmentRepository, BusinessConfigRepository
from models.appointment import (
    Appointment,
    AppointmentReschedule,
    AppointmentStatus,
    CancelledBy,
)
from models.business import BusinessConfig
from models.results import WriteResult, WriteStatus
from utils.datetime_utils import parse_iso_datetime, to_iso_string, utc_now
from utils.exceptions import DatabaseError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="storage.log")

# exclusion_violation, unique_violation
CONFLICT_SQLSTATES = ("23P01", "23505")

_DATETIME_FIELDS = ("cancelled_at", "created_at", "rescheduled_at")


def _create_supabase_client() -> SupabaseClientType:
    if not settings.supabase_url or not settings.supabase_key:
        raise DatabaseError("Supabase URL and key must be configured")
    return create_client(settings.supabase_url, settings.supabase_key)


def _is_conflict(error: APIError) -> bool:
    return getattr(error, "code", None) in CONFLICT_SQLSTATES


class SupabaseAppointmentRepository(AppointmentRepository):
    """
    Appointments table accessed through the Supabase client.

    Calls are synchronous HTTP requests made from async methods, matching
    how the rest of the service talks to Supabase.
    """

    def __init__(self, client: Optional[SupabaseClientType] = None):
        self.client: SupabaseClientType = client or _create_supabase_client()
        self.table_name = settings.appointments_table

    def _table(self):
        return self.client.table(self.table_name)

    # ========== Helper Methods ==========

    def _parse_appointment(self, item: dict) -> Appointment:
        """
        Parse appointment data from database response.

        Args:
            item: Raw appointment row

        Returns:
            Parsed Appointment object
        """
        item = item.copy()
        for field in _DATETIME_FIELDS:
            if item.get(field):
                item[field] = parse_iso_datetime(item[field])
        item.pop("start_minute", None)
        item.pop("end_minute", None)
        return Appointment(**item)

    def _serialize(self, appointment: Appointment) -> Dict[str, Any]:
        data = appointment.model_dump(mode="json", exclude_none=True, exclude={"id"})
        for field in _DATETIME_FIELDS:
            value = getattr(appointment, field)
            if value is not None:
                data[field] = to_iso_string(value)
        return data

    def _parse_rows(self, rows: List[dict]) -> List[Appointment]:
        return [self._parse_appointment(item) for item in rows]

    # ========== Reads ==========

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        try:
            response = self._table().select("*").eq("id", appointment_id).execute()
        except Exception as e:
            logger.error(f"Failed to get appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to get appointment: {e}") from e

        if response.data:
            return self._parse_appointment(response.data[0])
        return None

    async def find_booked_for_date(
        self,
        business_id: str,
        date: str,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        try:
            query = (
                self._table()
                .select("*")
                .eq("business_id", business_id)
                .eq("date", date)
                .eq("status", AppointmentStatus.BOOKED.value)
            )
            if exclude_appointment_id:
                query = query.neq("id", exclude_appointment_id)
            response = query.order("start_time", desc=False).execute()
        except Exception as e:
            logger.error(f"Failed to get booked appointments for {business_id} {date}: {e}")
            raise DatabaseError(f"Failed to get booked appointments: {e}") from e

        return self._parse_rows(response.data)

    async def find_for_date(self, business_id: str, date: str) -> List[Appointment]:
        try:
            response = (
                self._table()
                .select("*")
                .eq("business_id", business_id)
                .eq("date", date)
                .order("start_time", desc=False)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get appointments for {business_id} {date}: {e}")
            raise DatabaseError(f"Failed to get appointments: {e}") from e

        return self._parse_rows(response.data)

    async def find_upcoming_for_customer(
        self,
        business_id: str,
        customer_id: str,
        from_date: Optional[str] = None,
    ) -> List[Appointment]:
        try:
            query = (
                self._table()
                .select("*")
                .eq("business_id", business_id)
                .eq("customer_id", customer_id)
                .eq("status", AppointmentStatus.BOOKED.value)
            )
            if from_date:
                query = query.gte("date", from_date)
            response = (
                query.order("date", desc=False).order("start_time", desc=False).execute()
            )
        except Exception as e:
            logger.error(f"Failed to get customer appointments: {e}")
            raise DatabaseError(f"Failed to get customer appointments: {e}") from e

        return self._parse_rows(response.data)

    # ========== Conditional Writes ==========

    async def insert_if_no_overlap(self, appointment: Appointment) -> WriteResult:
        try:
            response = self._table().insert(self._serialize(appointment)).execute()
        except APIError as e:
            if _is_conflict(e):
                logger.warning(
                    f"Overlap rejected by database for {appointment.business_id} "
                    f"{appointment.date} {appointment.start_time}"
                )
                return WriteResult.failed(WriteStatus.CONFLICT)
            logger.error(f"Failed to insert appointment: {e}")
            raise DatabaseError(f"Failed to insert appointment: {e}") from e
        except Exception as e:
            logger.error(f"Failed to insert appointment: {e}")
            raise DatabaseError(f"Failed to insert appointment: {e}") from e

        if not response.data:
            raise DatabaseError("Failed to insert appointment: no data returned")
        return WriteResult.success(self._parse_appointment(response.data[0]))

    async def update_if_no_overlap(
        self,
        appointment_id: str,
        patch: AppointmentReschedule,
        exclude_self: bool = True,
    ) -> WriteResult:
        # The exclusion constraint never compares a row with itself, so the
        # database always behaves as exclude_self=True.
        update_data = {
            "date": patch.date,
            "start_time": patch.start_time,
            "end_time": patch.end_time,
            "rescheduled_at": to_iso_string(patch.rescheduled_at),
        }
        try:
            response = (
                self._table()
                .update(update_data)
                .eq("id", appointment_id)
                .eq("status", AppointmentStatus.BOOKED.value)
                .execute()
            )
        except APIError as e:
            if _is_conflict(e):
                logger.warning(f"Overlap rejected by database for reschedule {appointment_id}")
                return WriteResult.failed(WriteStatus.CONFLICT)
            logger.error(f"Failed to reschedule appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to reschedule appointment: {e}") from e
        except Exception as e:
            logger.error(f"Failed to reschedule appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to reschedule appointment: {e}") from e

        if response.data:
            return WriteResult.success(self._parse_appointment(response.data[0]))

        current = await self.find_by_id(appointment_id)
        if current is None:
            return WriteResult.failed(WriteStatus.NOT_FOUND)
        return WriteResult.failed(WriteStatus.NOT_BOOKED)

    # ========== Status Transitions ==========

    async def _update_booked(
        self, appointment_id: str, update_data: Dict[str, Any]
    ) -> Optional[Appointment]:
        try:
            response = (
                self._table()
                .update(update_data)
                .eq("id", appointment_id)
                .eq("status", AppointmentStatus.BOOKED.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to update appointment: {e}") from e

        if not response.data:
            return None
        return self._parse_appointment(response.data[0])

    async def mark_cancelled(
        self, appointment_id: str, by: CancelledBy, at: datetime
    ) -> Optional[Appointment]:
        return await self._update_booked(
            appointment_id,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "cancelled_by": by.value,
                "cancelled_at": to_iso_string(at),
            },
        )

    async def mark_completed(self, appointment_ids: List[str]) -> int:
        if not appointment_ids:
            return 0
        try:
            response = (
                self._table()
                .update({"status": AppointmentStatus.COMPLETED.value})
                .in_("id", appointment_ids)
                .eq("status", AppointmentStatus.BOOKED.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to mark appointments completed: {e}")
            raise DatabaseError(f"Failed to mark appointments completed: {e}") from e

        return len(response.data or [])

    async def set_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Optional[Appointment]:
        return await self._update_booked(appointment_id, {"status": status.value})


class SupabaseBusinessRepository(BusinessConfigRepository):
    """
    Business settings table accessed through the Supabase client.

    Includes a simple in-memory cache: settings change rarely and are read
    on every slot request.
    """

    def __init__(self, client: Optional[SupabaseClientType] = None):
        self.client: SupabaseClientType = client or _create_supabase_client()
        self.table_name = settings.businesses_table

        # Format: {cache_key: (data, expiry_time)}
        self._cache: Dict[str, Tuple[Any, datetime]] = {}
        self._cache_ttl = timedelta(minutes=5)

    # ========== Cache Helpers ==========

    def _get_from_cache(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if key not in self._cache:
            return None

        data, expiry = self._cache[key]
        if utc_now() > expiry:
            del self._cache[key]
            return None

        return data

    def _set_cache(self, key: str, value: Any) -> None:
        """Set value in cache with TTL."""
        expiry = utc_now() + self._cache_ttl
        self._cache[key] = (value, expiry)

    def invalidate(self, business_id: Optional[str] = None) -> None:
        """Drop cached settings for one business, or all of them."""
        if business_id is None:
            self._cache.clear()
        else:
            self._cache.pop(f"business:{business_id}", None)

    async def get_business(self, business_id: str) -> Optional[BusinessConfig]:
        cache_key = f"business:{business_id}"

        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        try:
            response = (
                self.client.table(self.table_name)
                .select("*")
                .eq("id", business_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get business {business_id}: {e}")
            raise DatabaseError(f"Failed to get business: {e}") from e

        if not response.data:
            return None

        business = BusinessConfig(**response.data[0])
        self._set_cache(cache_key, business)
        return business
