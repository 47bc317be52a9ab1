"""API schemas for metro schedule endpoints."""

from .schedule_schemas import (
    ScheduledArrivalSchema,
    StaticScheduleResponse,
    ScheduleStatsSchema,
    GtfsStatusResponse,
    SchedulerStatusResponse,
)

__all__ = [
    "ScheduledArrivalSchema",
    "StaticScheduleResponse",
    "ScheduleStatsSchema",
    "GtfsStatusResponse",
    "SchedulerStatusResponse",
]
