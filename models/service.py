"""Service models for bookable business services."""

from typing import Optional

from pydantic import BaseModel, Field


class Service(BaseModel):
    """
    Service offered by a business.

    Duration is not range-checked here: stored settings may hold a bad
    value, and the slot computation answers those with no slots instead
    of failing to load the whole business.
    """

    id: str
    name: str
    duration_minutes: int
    is_active: bool = True
    price: Optional[float] = Field(None, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "svc_intro",
                "name": "Intro session",
                "duration_minutes": 30,
                "is_active": True,
                "price": 120,
            }
        }
