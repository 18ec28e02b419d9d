"""
In-process storage for appointments and business settings.

Used for local development and tests. Conditional writes take the store
lock and evaluate the overlap test and the write in one step, the same
guarantee the database exclusion constraint gives the Supabase store.
Reads yield to the event loop once, as a network round trip would.
"""

import asyncio
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from db.repository import AppointmentRepository, BusinessConfigRepository
from models.appointment import (
    Appointment,
    AppointmentReschedule,
    AppointmentStatus,
    CancelledBy,
)
from models.business import BusinessConfig
from models.results import WriteResult, WriteStatus


class InMemoryAppointmentRepository(AppointmentRepository):
    """Appointments kept in a dict keyed by id."""

    def __init__(self, appointments: Optional[List[Appointment]] = None):
        self._lock = threading.Lock()
        self._rows: Dict[str, Appointment] = {}
        for appointment in appointments or []:
            stored = appointment
            if not stored.id:
                stored = stored.model_copy(update={"id": uuid.uuid4().hex})
            self._rows[stored.id] = stored

    def all(self) -> List[Appointment]:
        """Snapshot of every stored appointment."""
        with self._lock:
            return list(self._rows.values())

    # ========== Reads ==========

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        await asyncio.sleep(0)
        with self._lock:
            return self._rows.get(appointment_id)

    async def find_booked_for_date(
        self,
        business_id: str,
        date: str,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        await asyncio.sleep(0)
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row.business_id == business_id
                and row.date == date
                and row.status == AppointmentStatus.BOOKED
                and (exclude_appointment_id is None or row.id != exclude_appointment_id)
            ]
        return sorted(rows, key=lambda row: row.start_time)

    async def find_for_date(self, business_id: str, date: str) -> List[Appointment]:
        await asyncio.sleep(0)
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row.business_id == business_id and row.date == date
            ]
        return sorted(rows, key=lambda row: (row.start_time, row.id))

    async def find_upcoming_for_customer(
        self,
        business_id: str,
        customer_id: str,
        from_date: Optional[str] = None,
    ) -> List[Appointment]:
        await asyncio.sleep(0)
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row.business_id == business_id
                and row.customer_id == customer_id
                and row.status == AppointmentStatus.BOOKED
                and (from_date is None or row.date >= from_date)
            ]
        return sorted(rows, key=lambda row: (row.date, row.start_time))

    # ========== Conditional Writes ==========

    def _overlapping(self, candidate: Appointment, exclude_id: Optional[str]) -> bool:
        for row in self._rows.values():
            if row.status != AppointmentStatus.BOOKED:
                continue
            if exclude_id is not None and row.id == exclude_id:
                continue
            if row.overlaps(candidate):
                return True
        return False

    async def insert_if_no_overlap(self, appointment: Appointment) -> WriteResult:
        stored = appointment.model_copy(
            update={"id": appointment.id or uuid.uuid4().hex}
        )
        with self._lock:
            if stored.id in self._rows:
                return WriteResult.failed(WriteStatus.CONFLICT)
            if stored.status == AppointmentStatus.BOOKED and self._overlapping(
                stored, exclude_id=None
            ):
                return WriteResult.failed(WriteStatus.CONFLICT)
            self._rows[stored.id] = stored
        return WriteResult.success(stored)

    async def update_if_no_overlap(
        self,
        appointment_id: str,
        patch: AppointmentReschedule,
        exclude_self: bool = True,
    ) -> WriteResult:
        with self._lock:
            current = self._rows.get(appointment_id)
            if current is None:
                return WriteResult.failed(WriteStatus.NOT_FOUND)
            if current.status != AppointmentStatus.BOOKED:
                return WriteResult.failed(WriteStatus.NOT_BOOKED)

            moved = current.model_copy(update=patch.model_dump())
            exclude_id = appointment_id if exclude_self else None
            if self._overlapping(moved, exclude_id=exclude_id):
                return WriteResult.failed(WriteStatus.CONFLICT)
            self._rows[appointment_id] = moved
        return WriteResult.success(moved)

    # ========== Status Transitions ==========

    async def mark_cancelled(
        self, appointment_id: str, by: CancelledBy, at: datetime
    ) -> Optional[Appointment]:
        with self._lock:
            current = self._rows.get(appointment_id)
            if current is None or current.status != AppointmentStatus.BOOKED:
                return None
            cancelled = current.model_copy(
                update={
                    "status": AppointmentStatus.CANCELLED,
                    "cancelled_by": by,
                    "cancelled_at": at,
                }
            )
            self._rows[appointment_id] = cancelled
        return cancelled

    async def mark_completed(self, appointment_ids: List[str]) -> int:
        changed = 0
        with self._lock:
            for appointment_id in appointment_ids:
                current = self._rows.get(appointment_id)
                if current is None or current.status != AppointmentStatus.BOOKED:
                    continue
                self._rows[appointment_id] = current.model_copy(
                    update={"status": AppointmentStatus.COMPLETED}
                )
                changed += 1
        return changed

    async def set_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Optional[Appointment]:
        with self._lock:
            current = self._rows.get(appointment_id)
            if current is None or current.status != AppointmentStatus.BOOKED:
                return None
            updated = current.model_copy(update={"status": status})
            self._rows[appointment_id] = updated
        return updated


class InMemoryBusinessRepository(BusinessConfigRepository):
    """Business settings kept in a dict keyed by business id."""

    def __init__(self, businesses: Optional[List[BusinessConfig]] = None):
        self._businesses: Dict[str, BusinessConfig] = {
            business.id: business for business in businesses or []
        }

    def save(self, business: BusinessConfig) -> None:
        self._businesses[business.id] = business

    async def get_business(self, business_id: str) -> Optional[BusinessConfig]:
        return self._businesses.get(business_id)
