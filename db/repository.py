"""
Storage interfaces used by the booking engine.

The one hard requirement on implementations: insert_if_no_overlap and
update_if_no_overlap are evaluated by the store as a single conditional
operation. Two writers that both passed the engine's freshness check must
not both succeed for overlapping BOOKED intervals on the same business
and date.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from models.appointment import (
    Appointment,
    AppointmentReschedule,
    AppointmentStatus,
    CancelledBy,
)
from models.availability import BusinessAvailability
from models.business import BookingPolicy, BusinessConfig
from models.results import WriteResult
from models.service import Service
from utils.exceptions import BusinessNotFoundError


class AppointmentRepository(ABC):
    """Appointment storage."""

    @abstractmethod
    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    async def find_booked_for_date(
        self,
        business_id: str,
        date: str,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """BOOKED appointments for a business and date, ordered by start time."""
        pass

    @abstractmethod
    async def find_for_date(self, business_id: str, date: str) -> List[Appointment]:
        """All appointments for a business and date, any status."""
        pass

    @abstractmethod
    async def find_upcoming_for_customer(
        self,
        business_id: str,
        customer_id: str,
        from_date: Optional[str] = None,
    ) -> List[Appointment]:
        """
        The customer's BOOKED appointments with a business.

        from_date narrows to date >= from_date; time-of-day filtering is
        left to the caller.
        """
        pass

    @abstractmethod
    async def insert_if_no_overlap(self, appointment: Appointment) -> WriteResult:
        """Insert a BOOKED appointment unless it overlaps another BOOKED one."""
        pass

    @abstractmethod
    async def update_if_no_overlap(
        self,
        appointment_id: str,
        patch: AppointmentReschedule,
        exclude_self: bool = True,
    ) -> WriteResult:
        """Move a BOOKED appointment unless the new interval overlaps another."""
        pass

    @abstractmethod
    async def mark_cancelled(
        self, appointment_id: str, by: CancelledBy, at: datetime
    ) -> Optional[Appointment]:
        """Cancel a BOOKED appointment; None if it was not BOOKED."""
        pass

    @abstractmethod
    async def mark_completed(self, appointment_ids: List[str]) -> int:
        """Flip the given BOOKED appointments to COMPLETED; returns how many changed."""
        pass

    @abstractmethod
    async def set_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Optional[Appointment]:
        """Set the status of a BOOKED appointment; None if it was not BOOKED."""
        pass


class BusinessConfigRepository(ABC):
    """Read access to business settings."""

    @abstractmethod
    async def get_business(self, business_id: str) -> Optional[BusinessConfig]:
        pass

    async def require_business(self, business_id: str) -> BusinessConfig:
        business = await self.get_business(business_id)
        if business is None:
            raise BusinessNotFoundError(f"Business not found: {business_id}")
        return business

    async def get_availability(self, business_id: str) -> BusinessAvailability:
        return (await self.require_business(business_id)).availability

    async def get_policy(self, business_id: str) -> BookingPolicy:
        return (await self.require_business(business_id)).policy

    async def get_owner_email(self, business_id: str) -> str:
        return (await self.require_business(business_id)).owner_email

    async def get_service(self, business_id: str, service_id: str) -> Optional[Service]:
        return (await self.require_business(business_id)).get_service(service_id)
