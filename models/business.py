"""Business configuration models consumed by the booking engine."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.availability import BusinessAvailability
from models.service import Service
from utils.validation import normalize_email


class BookingPolicy(BaseModel):
    """Customer-facing booking rules chosen by the business owner."""

    limit_customer_to_one_upcoming_appointment: bool = False


class BusinessConfig(BaseModel):
    """Everything the engine needs to know about one business."""

    id: str
    name: str = ""
    owner_email: str = ""
    availability: BusinessAvailability = Field(default_factory=BusinessAvailability)
    policy: BookingPolicy = Field(default_factory=BookingPolicy)
    services: List[Service] = Field(default_factory=list)

    @field_validator("owner_email", mode="before")
    @classmethod
    def normalize_owner_email(cls, v: Optional[str]) -> str:
        return normalize_email(v)

    def get_service(self, service_id: str) -> Optional[Service]:
        """Find a service by id, ignoring surrounding whitespace."""
        wanted = str(service_id or "").strip()
        for service in self.services:
            if service.id.strip() == wanted:
                return service
        return None
