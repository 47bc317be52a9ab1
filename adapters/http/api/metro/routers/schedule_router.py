import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from core.config import settings
from core.rate_limiter import limiter, RateLimits
from adapters.http.api.metro.schemas import (
    ScheduledArrivalSchema,
    StaticScheduleResponse,
    ScheduleStatsSchema,
    GtfsStatusResponse,
    SchedulerStatusResponse,
)
from src.schedule_bc.schedule.domain.errors import QueryValidationError
from src.schedule_bc.schedule.domain.services import project_arrivals
from src.schedule_bc.schedule.infrastructure.schedule_store import ScheduleStore
from src.schedule_bc.schedule.infrastructure.refresh_scheduler import schedule_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Static schedule"])


def get_store() -> ScheduleStore:
    return ScheduleStore.get_instance()


def get_now() -> datetime:
    """Current time in the network's timezone."""
    return datetime.now(settings.tz)


@router.get(
    "/static",
    response_model=StaticScheduleResponse,
    response_model_exclude_none=True,
)
@limiter.limit(RateLimits.SCHEDULE)
def get_static_schedule(
    request: Request,
    stopId: Optional[str] = Query(None, description="GTFS stop_id"),
    direction: Optional[str] = Query(None, description="Direction token: boulingrin, gb, technopole"),
    store: ScheduleStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    """Get the next scheduled arrivals at a stop for one direction.

    Returns at most ARRIVALS_LIMIT arrivals after the current time, soonest first.
    Before the first snapshot has loaded, returns an empty schedule with
    ``message: "not loaded"``.
    """
    missing = [name for name, value in (("stopId", stopId), ("direction", direction)) if not value]
    if missing:
        raise QueryValidationError(missing)

    snapshot = store.snapshot
    if snapshot is None:
        return StaticScheduleResponse(schedule=[], message="not loaded")

    try:
        arrivals = project_arrivals(snapshot, stopId, direction, now, limit=settings.ARRIVALS_LIMIT)
    except Exception as e:
        logger.exception(f"Schedule lookup failed for stop {stopId} ({direction})")
        raise HTTPException(status_code=500, detail=f"Error computing schedule: {str(e)}")

    return StaticScheduleResponse(
        schedule=[
            ScheduledArrivalSchema(
                arrival=a.arrival_unix,
                tripId=a.trip_id,
                direction=a.direction,
                headsign=a.headsign,
            )
            for a in arrivals
        ],
        lastUpdate=snapshot.built_at.isoformat(),
    )


@router.get("/gtfs-status", response_model=GtfsStatusResponse)
@limiter.limit(RateLimits.STATUS)
def get_gtfs_status(request: Request, store: ScheduleStore = Depends(get_store)):
    """Get load state and table sizes of the current snapshot."""
    snapshot = store.snapshot
    if snapshot is None:
        return GtfsStatusResponse(
            loaded=False,
            lastUpdate=None,
            stats=ScheduleStatsSchema(**store.stats),
        )

    return GtfsStatusResponse(
        loaded=True,
        lastUpdate=snapshot.built_at.isoformat(),
        stats=ScheduleStatsSchema(**snapshot.stats),
    )


@router.get("/scheduler/status", response_model=SchedulerStatusResponse)
def get_scheduler_status():
    """Get the status of the static GTFS refresh scheduler."""
    return SchedulerStatusResponse(**schedule_scheduler.status)
