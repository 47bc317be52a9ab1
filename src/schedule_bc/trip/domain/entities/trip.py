from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Trip:
    """GTFS Trip entity - one scheduled run of the line."""

    id: str
    route_id: str
    service_id: str
    direction_id: Optional[int] = None  # 0 = outbound, 1 = inbound
    headsign: Optional[str] = None

    @classmethod
    def from_gtfs(cls, row: dict) -> "Trip":
        """Create Trip from GTFS CSV row.

        Raises ValueError for a row without trip_id or with a non-numeric direction_id.
        """
        trip_id = row.get("trip_id", "")
        if not trip_id:
            raise ValueError("trip without trip_id")
        return cls(
            id=trip_id,
            route_id=row.get("route_id", ""),
            service_id=row.get("service_id", ""),
            direction_id=int(row["direction_id"]) if row.get("direction_id") else None,
            headsign=row.get("trip_headsign") or None,
        )
