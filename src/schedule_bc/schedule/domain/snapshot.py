from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Dict, List, Mapping, Tuple

from src.schedule_bc.calendar.domain.entities import CalendarRule, CalendarException
from src.schedule_bc.calendar.domain.services import ServiceCalendar
from src.schedule_bc.stop_time.domain.entities import StopTime
from src.schedule_bc.trip.domain.entities import Trip


@dataclass(frozen=True)
class Snapshot:
    """One complete, read-only build of the line's static schedule.

    Built off to the side by the snapshot builder and published with a
    single reference swap; never mutated afterwards.
    """

    route_id: str
    trips: Mapping[str, Trip]
    stop_times: Tuple[StopTime, ...]
    calendar: Tuple[CalendarRule, ...]
    calendar_dates: Tuple[CalendarException, ...]
    built_at: datetime
    # {table_name: rows dropped as malformed}
    dropped_rows: Mapping[str, int] = field(default_factory=dict)

    @cached_property
    def service_calendar(self) -> ServiceCalendar:
        return ServiceCalendar(self.calendar, self.calendar_dates)

    @cached_property
    def stop_times_by_stop(self) -> Dict[str, List[StopTime]]:
        index: Dict[str, List[StopTime]] = defaultdict(list)
        for stop_time in self.stop_times:
            index[stop_time.stop_id].append(stop_time)
        return dict(index)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "trips": len(self.trips),
            "stopTimes": len(self.stop_times),
            "calendar": len(self.calendar),
        }
