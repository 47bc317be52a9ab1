from .stop_time import StopTime, parse_gtfs_time

__all__ = ["StopTime", "parse_gtfs_time"]
