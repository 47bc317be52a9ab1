"""Errors raised while building or querying the schedule snapshot."""


class ScheduleError(Exception):
    """Base class for schedule errors."""


class FetchError(ScheduleError):
    """The static feed could not be downloaded (network failure or non-2xx status)."""


class ExtractError(ScheduleError):
    """The downloaded archive is malformed or could not be unpacked."""


class ParseError(ScheduleError):
    """A table is unreadable as a whole (undecodable or missing required columns).

    Individual malformed rows never raise this; they are dropped.
    """


class QueryValidationError(ScheduleError):
    """A schedule query is missing a required parameter."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required parameter(s): {', '.join(self.missing)}")
