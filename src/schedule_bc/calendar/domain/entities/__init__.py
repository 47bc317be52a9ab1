from .calendar import CalendarRule, CalendarException, ExceptionType, parse_gtfs_date

__all__ = ["CalendarRule", "CalendarException", "ExceptionType", "parse_gtfs_date"]
