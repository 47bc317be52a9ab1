from .service_calendar import ServiceCalendar

__all__ = ["ServiceCalendar"]
