"""Availability models: weekly working hours and per-date overrides."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from utils.constants import LAST_MINUTE_OF_DAY, SATURDAY, SUNDAY
from utils.datetime_utils import minutes_to_time, parse_time_to_minutes
from utils.validation import validate_date_string


class TimeInterval(BaseModel):
    """
    Half-open interval [start, end) in business-local minutes since midnight.
    """

    start: int = Field(..., ge=0, le=LAST_MINUTE_OF_DAY)
    end: int = Field(..., ge=0, le=LAST_MINUTE_OF_DAY)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_order(self) -> "TimeInterval":
        if self.start >= self.end:
            raise ValueError(
                f"Interval start ({self.start}) must be before end ({self.end})"
            )
        return self

    @classmethod
    def from_strings(cls, start: str, end: str) -> Optional["TimeInterval"]:
        """Build from "HH:mm" strings; None when either is unusable or end <= start."""
        start_min = parse_time_to_minutes(start)
        end_min = parse_time_to_minutes(end)
        if start_min is None or end_min is None or end_min <= start_min:
            return None
        return cls(start=start_min, end=end_min)

    @property
    def start_time(self) -> str:
        return minutes_to_time(self.start)

    @property
    def end_time(self) -> str:
        return minutes_to_time(self.end)

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and other.end <= self.end


class TimeRange(BaseModel):
    """Raw "HH:mm" range as entered in the opening-hours settings page."""

    start: str = ""
    end: str = ""

    @field_validator("start", "end", mode="before")
    @classmethod
    def strip_value(cls, v: Optional[str]) -> str:
        return str(v if v is not None else "").strip()

    def to_interval(self) -> Optional[TimeInterval]:
        return TimeInterval.from_strings(self.start, self.end)


class DaySchedule(BaseModel):
    """
    Working hours for one weekday (0=Sunday .. 6=Saturday).

    Older settings stored a single start/end pair on the day instead of
    a list of ranges; those are still honoured when ranges is empty.
    """

    day: int = Field(..., ge=SUNDAY, le=SATURDAY)
    enabled: bool = True
    ranges: List[TimeRange] = Field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None

    def effective_ranges(self) -> List[TimeRange]:
        ranges = [r for r in self.ranges if r.start or r.end]
        if ranges:
            return ranges
        legacy_start = (self.start or "").strip()
        legacy_end = (self.end or "").strip()
        if legacy_start or legacy_end:
            return [TimeRange(start=legacy_start, end=legacy_end)]
        return []


class DateOverride(BaseModel):
    """Exception for one calendar date: closed, or custom hours replacing the week."""

    date: str
    closed: bool = False
    ranges: List[TimeRange] = Field(default_factory=list)
    reason: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        if not validate_date_string(v):
            raise ValueError(f"Invalid override date: {v!r}")
        return v


class BusinessAvailability(BaseModel):
    """Availability settings owned by a business."""

    timezone: str = ""
    days: List[DaySchedule] = Field(default_factory=list)
    overrides: List[DateOverride] = Field(default_factory=list)

    @field_validator("timezone", mode="before")
    @classmethod
    def strip_timezone(cls, v: Optional[str]) -> str:
        return str(v if v is not None else "").strip()

    @classmethod
    def from_weekly_hours(
        cls,
        weekly_hours: Dict[int, List[tuple]],
        timezone: str = "",
        overrides: Optional[List[DateOverride]] = None,
    ) -> "BusinessAvailability":
        """
        Build from {weekday: [("09:00", "12:00"), ...]}.

        Weekdays missing from the mapping are closed.
        """
        days = [
            DaySchedule(
                day=day,
                enabled=bool(ranges),
                ranges=[TimeRange(start=start, end=end) for start, end in ranges],
            )
            for day, ranges in sorted(weekly_hours.items())
        ]
        return cls(timezone=timezone, days=days, overrides=overrides or [])

    class Config:
        json_schema_extra = {
            "example": {
                "timezone": "Asia/Jerusalem",
                "days": [
                    {"day": 0, "enabled": True, "ranges": [{"start": "09:00", "end": "17:00"}]},
                    {"day": 5, "enabled": True, "start": "09:00", "end": "13:00"},
                    {"day": 6, "enabled": False},
                ],
                "overrides": [{"date": "2026-04-02", "closed": True, "reason": "Holiday"}],
            }
        }
