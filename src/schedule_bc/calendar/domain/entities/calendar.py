from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum


class ExceptionType(IntEnum):
    """GTFS Calendar Date exception types."""
    ADDED = 1  # Service added for this date
    REMOVED = 2  # Service removed for this date


def parse_gtfs_date(date_str: str) -> date:
    """Parse YYYYMMDD date string.

    Raises ValueError on anything that is not an 8-digit calendar date.
    """
    date_str = date_str.strip()
    if len(date_str) != 8 or not date_str.isdigit():
        raise ValueError(f"invalid GTFS date: {date_str!r}")
    return datetime.strptime(date_str, "%Y%m%d").date()


def _flag(row: dict, day_name: str) -> bool:
    value = row.get(day_name, "0")
    if value not in ("0", "1"):
        raise ValueError(f"invalid {day_name} flag: {value!r}")
    return value == "1"


@dataclass(frozen=True)
class CalendarRule:
    """GTFS Calendar entity - weekly service pattern inside a validity window."""

    service_id: str
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    start_date: date
    end_date: date

    @classmethod
    def from_gtfs(cls, row: dict) -> "CalendarRule":
        """Create CalendarRule from GTFS CSV row."""
        service_id = row.get("service_id", "")
        if not service_id:
            raise ValueError("calendar row without service_id")
        return cls(
            service_id=service_id,
            monday=_flag(row, "monday"),
            tuesday=_flag(row, "tuesday"),
            wednesday=_flag(row, "wednesday"),
            thursday=_flag(row, "thursday"),
            friday=_flag(row, "friday"),
            saturday=_flag(row, "saturday"),
            sunday=_flag(row, "sunday"),
            start_date=parse_gtfs_date(row.get("start_date", "")),
            end_date=parse_gtfs_date(row.get("end_date", "")),
        )

    def covers(self, day: date) -> bool:
        """Check if day falls inside the inclusive validity window."""
        return self.start_date <= day <= self.end_date

    def runs_on_weekday(self, day: date) -> bool:
        """Weekday flag for day, ignoring the validity window."""
        days = [self.monday, self.tuesday, self.wednesday, self.thursday,
                self.friday, self.saturday, self.sunday]
        return days[day.weekday()]


@dataclass(frozen=True)
class CalendarException:
    """GTFS CalendarDate entity - represents service exceptions."""

    service_id: str
    date: date
    exception_type: ExceptionType

    @classmethod
    def from_gtfs(cls, row: dict) -> "CalendarException":
        """Create CalendarException from GTFS CSV row."""
        service_id = row.get("service_id", "")
        if not service_id:
            raise ValueError("calendar_dates row without service_id")
        return cls(
            service_id=service_id,
            date=parse_gtfs_date(row.get("date", "")),
            exception_type=ExceptionType(int(row.get("exception_type", ""))),
        )

    @property
    def is_added(self) -> bool:
        return self.exception_type == ExceptionType.ADDED
