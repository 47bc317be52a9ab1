"""Next-arrival projection for one stop and direction.

Turns the static timetable into absolute arrival times:

- trips are filtered by direction and by the service calendar for ``now``'s date
- ``HH:MM:SS`` arrival times are anchored on today's midnight, or tomorrow's
  once they reach 24:00:00
- arrivals at or before ``now`` are discarded and the soonest ones returned
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import List, Optional

from src.schedule_bc.schedule.domain.snapshot import Snapshot

SECONDS_PER_DAY = 86400
DEFAULT_LIMIT = 5

BOULINGRIN = "boulingrin"
GEORGES_BRAQUE = "gb"

# Display labels by request token. Only two direction_id values exist in the
# feed, so "gb" and every unknown token share direction_id 0 while keeping
# different labels.
DIRECTION_LABELS = {
    BOULINGRIN: "Boulingrin",
    GEORGES_BRAQUE: "Georges Braque",
}
DEFAULT_DIRECTION_LABEL = "Technopôle"


@dataclass(frozen=True)
class ProjectedArrival:
    arrival: datetime
    trip_id: str
    direction: str
    headsign: str = ""

    @property
    def arrival_unix(self) -> int:
        return int(self.arrival.timestamp())


def direction_id_for_token(token: str) -> int:
    return 1 if token == BOULINGRIN else 0


def direction_label_for_token(token: str) -> str:
    return DIRECTION_LABELS.get(token, DEFAULT_DIRECTION_LABEL)


def resolve_arrival(seconds: int, now: datetime) -> datetime:
    """Anchor seconds-since-midnight on now's service day.

    Times of 24:00:00 and later belong to the early hours of the next day.
    """
    today = now.date()
    if seconds >= SECONDS_PER_DAY:
        anchor = datetime.combine(today + timedelta(days=1), time(0), tzinfo=now.tzinfo)
        return anchor + timedelta(seconds=seconds - SECONDS_PER_DAY)
    anchor = datetime.combine(today, time(0), tzinfo=now.tzinfo)
    return anchor + timedelta(seconds=seconds)


def project_arrivals(
    snapshot: Optional[Snapshot],
    stop_id: str,
    direction: str,
    now: datetime,
    limit: int = DEFAULT_LIMIT,
) -> List[ProjectedArrival]:
    """Get the next scheduled arrivals at a stop.

    Args:
        snapshot: Current schedule snapshot, or None if none has loaded yet
        stop_id: GTFS stop_id
        direction: Direction token from the client ("boulingrin", "gb", ...)
        now: Reference time; its date selects the service day
        limit: Maximum number of arrivals returned

    Returns:
        Up to ``limit`` arrivals strictly after ``now``, soonest first
    """
    if snapshot is None:
        return []

    direction_id = direction_id_for_token(direction)
    label = direction_label_for_token(direction)
    candidates = [trip for trip in snapshot.trips.values() if trip.direction_id == direction_id]
    running = snapshot.service_calendar.active_services(
        now.date(), (trip.service_id for trip in candidates)
    )
    trips = {trip.id: trip for trip in candidates if trip.service_id in running}
    if not trips:
        return []

    arrivals: List[ProjectedArrival] = []
    for stop_time in snapshot.stop_times_by_stop.get(stop_id, []):
        trip = trips.get(stop_time.trip_id)
        if trip is None:
            continue

        arrival = resolve_arrival(stop_time.arrival_seconds, now)
        if arrival <= now:
            continue

        arrivals.append(ProjectedArrival(
            arrival=arrival,
            trip_id=trip.id,
            direction=label,
            headsign=trip.headsign or "",
        ))

    arrivals.sort(key=lambda a: a.arrival)
    return arrivals[:limit]
