"""Slot models for bookable start times."""

from pydantic import BaseModel, ConfigDict

from models.availability import TimeInterval
from utils.datetime_utils import minutes_to_time


class Slot(BaseModel):
    """Candidate [start_time, end_time) for one service on one date."""

    start_time: str
    end_time: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_interval(cls, interval: TimeInterval) -> "Slot":
        return cls(
            start_time=minutes_to_time(interval.start),
            end_time=minutes_to_time(interval.end),
        )
