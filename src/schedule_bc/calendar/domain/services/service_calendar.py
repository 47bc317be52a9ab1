from datetime import date
from typing import Dict, Iterable, Set, Tuple

from src.schedule_bc.calendar.domain.entities import CalendarRule, CalendarException


class ServiceCalendar:
    """Decides whether a service_id runs on a given day.

    Exceptions from calendar_dates always win over the weekly rule for their
    exact date. Without an exception, the rule's validity window and weekday
    flag decide.
    """

    def __init__(self, rules: Iterable[CalendarRule], exceptions: Iterable[CalendarException]):
        self._rules: Dict[str, CalendarRule] = {rule.service_id: rule for rule in rules}
        # Last row wins if a feed repeats a (service_id, date) pair
        self._exceptions: Dict[Tuple[str, date], CalendarException] = {
            (exc.service_id, exc.date): exc for exc in exceptions
        }

    def is_active(self, service_id: str, day: date) -> bool:
        exception = self._exceptions.get((service_id, day))
        if exception is not None:
            return exception.is_added

        rule = self._rules.get(service_id)
        if rule is None:
            return False

        if not rule.covers(day):
            return False

        return rule.runs_on_weekday(day)

    def active_services(self, day: date, service_ids: Iterable[str]) -> Set[str]:
        """Subset of service_ids running on day."""
        return {sid for sid in set(service_ids) if self.is_active(sid, day)}
