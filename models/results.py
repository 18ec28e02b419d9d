"""
Result models for booking operations.

Policy conflicts and lost races are expected outcomes and are returned as
values so the caller can offer a remedy (cancel-and-retry, pick another
time) instead of catching exceptions.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment


class ConflictCode(str, Enum):
    """Customer-facing booking policy violations."""

    ACTIVE_APPOINTMENT_EXISTS = "ACTIVE_APPOINTMENT_EXISTS"
    SAME_SERVICE_SAME_DAY_EXISTS = "SAME_SERVICE_SAME_DAY_EXISTS"


class ConflictResult(BaseModel):
    """Outcome of the booking policy check."""

    ok: bool
    code: Optional[ConflictCode] = None
    existing_appointments: List[Appointment] = Field(default_factory=list)

    @classmethod
    def allowed(cls) -> "ConflictResult":
        return cls(ok=True)

    @classmethod
    def rejected(
        cls, code: ConflictCode, existing: List[Appointment]
    ) -> "ConflictResult":
        return cls(ok=False, code=code, existing_appointments=existing)


class BookingErrorCode(str, Enum):
    """Reasons a booking operation did not change anything."""

    INVALID_DATE = "INVALID_DATE"
    INVALID_TIME = "INVALID_TIME"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
    NOT_BOOKED = "NOT_BOOKED"
    PAST_DATE = "PAST_DATE"
    SLOT_NO_LONGER_AVAILABLE = "SLOT_NO_LONGER_AVAILABLE"


ERROR_MESSAGES = {
    BookingErrorCode.INVALID_DATE: "Invalid date",
    BookingErrorCode.INVALID_TIME: "Invalid start time",
    BookingErrorCode.SERVICE_NOT_FOUND: "Service not found",
    BookingErrorCode.APPOINTMENT_NOT_FOUND: "Appointment not found",
    BookingErrorCode.NOT_BOOKED: "Only booked appointments can be changed",
    BookingErrorCode.PAST_DATE: "Cannot book a time that has already passed",
    BookingErrorCode.SLOT_NO_LONGER_AVAILABLE: (
        "This time is no longer available, please pick another"
    ),
}


class BookingFailure(BaseModel):
    """A booking operation that was rejected before any state changed."""

    code: BookingErrorCode
    message: str = ""

    @classmethod
    def of(cls, code: BookingErrorCode, message: Optional[str] = None) -> "BookingFailure":
        return cls(code=code, message=message or ERROR_MESSAGES[code])


class WriteStatus(str, Enum):
    """Outcome of a conditional write evaluated by the store."""

    OK = "OK"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    NOT_BOOKED = "NOT_BOOKED"


class WriteResult(BaseModel):
    """Result of insert_if_no_overlap / update_if_no_overlap."""

    status: WriteStatus
    appointment: Optional[Appointment] = None

    @property
    def ok(self) -> bool:
        return self.status == WriteStatus.OK

    @classmethod
    def success(cls, appointment: Appointment) -> "WriteResult":
        return cls(status=WriteStatus.OK, appointment=appointment)

    @classmethod
    def failed(cls, status: WriteStatus) -> "WriteResult":
        return cls(status=status)
