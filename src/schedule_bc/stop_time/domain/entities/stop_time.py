import re
from dataclasses import dataclass

# HH:MM:SS, hours may go past 23 for service after midnight
TIME_REGEX = re.compile(r'^(\d{1,3}):([0-5]\d):([0-5]\d)$')


def parse_gtfs_time(time_str: str) -> int:
    """Convert HH:MM:SS to seconds since midnight. Handles times > 24:00:00.

    Raises ValueError if the string is not a GTFS time.
    """
    match = TIME_REGEX.match(time_str.strip())
    if not match:
        raise ValueError(f"invalid GTFS time: {time_str!r}")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


@dataclass(frozen=True)
class StopTime:
    """GTFS StopTime entity - a trip's scheduled arrival at one stop."""

    trip_id: str
    stop_id: str
    arrival_time: str  # HH:MM:SS format (can be > 24:00:00)
    arrival_seconds: int

    @classmethod
    def from_gtfs(cls, row: dict) -> "StopTime":
        """Create StopTime from GTFS CSV row."""
        trip_id = row.get("trip_id", "")
        stop_id = row.get("stop_id", "")
        if not trip_id or not stop_id:
            raise ValueError("stop time without trip_id or stop_id")
        arrival_time = row.get("arrival_time", "")
        return cls(
            trip_id=trip_id,
            stop_id=stop_id,
            arrival_time=arrival_time,
            arrival_seconds=parse_gtfs_time(arrival_time),
        )
