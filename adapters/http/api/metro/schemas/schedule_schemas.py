"""Static schedule response schemas.

Field names are camelCase to match the JSON the web client reads.
"""

from typing import Optional, List
from pydantic import BaseModel


class ScheduledArrivalSchema(BaseModel):
    arrival: int  # unix seconds
    tripId: str
    isStatic: bool = True
    direction: str  # display label, e.g. "Boulingrin"
    headsign: str = ""


class StaticScheduleResponse(BaseModel):
    schedule: List[ScheduledArrivalSchema]
    lastUpdate: Optional[str] = None  # ISO 8601, absent while not loaded
    message: Optional[str] = None  # "not loaded" before the first snapshot


class ScheduleStatsSchema(BaseModel):
    trips: int
    stopTimes: int
    calendar: int


class GtfsStatusResponse(BaseModel):
    loaded: bool
    lastUpdate: Optional[str]
    stats: ScheduleStatsSchema


class SchedulerStatusResponse(BaseModel):
    running: bool
    last_refresh: Optional[str]
    refresh_count: int
    error_count: int
    interval_seconds: int
    last_error: Optional[str] = None
