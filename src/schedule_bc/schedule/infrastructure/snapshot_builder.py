"""Static GTFS snapshot builder.

Downloads the packaged feed, unpacks it, parses the four tables the
schedule needs and keeps only the configured route's trips and stop times.
"""

import logging
import shutil
import time
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

import httpx

from src.schedule_bc.calendar.domain.entities import CalendarRule, CalendarException
from src.schedule_bc.feed.csv_table import decode_table, parse_table, require_columns
from src.schedule_bc.schedule.domain.errors import ExtractError, FetchError, ParseError, ScheduleError
from src.schedule_bc.schedule.domain.snapshot import Snapshot
from src.schedule_bc.schedule.infrastructure.schedule_store import ScheduleStore
from src.schedule_bc.stop_time.domain.entities import StopTime
from src.schedule_bc.trip.domain.entities import Trip

logger = logging.getLogger(__name__)

T = TypeVar("T")

ARCHIVE_NAME = "gtfs_static.zip"
EXTRACT_DIR_NAME = "extracted"

# Tables read from the archive and the columns each one cannot do without
TABLES = {
    'stop_times': ['trip_id', 'stop_id', 'arrival_time'],
    'trips': ['route_id', 'service_id', 'trip_id'],
    'calendar': ['service_id', 'monday', 'tuesday', 'wednesday', 'thursday',
                 'friday', 'saturday', 'sunday', 'start_date', 'end_date'],
    'calendar_dates': ['service_id', 'date', 'exception_type'],
}


class SnapshotBuilder:
    """Builds a fresh Snapshot from the static feed URL."""

    def __init__(
        self,
        feed_url: str,
        route_id: str,
        work_dir: Path,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        self.feed_url = feed_url
        self.route_id = route_id
        self.work_dir = Path(work_dir)
        self.timeout = timeout
        self._client = client

    @property
    def archive_path(self) -> Path:
        return self.work_dir / ARCHIVE_NAME

    @property
    def extract_dir(self) -> Path:
        return self.work_dir / EXTRACT_DIR_NAME

    def build(self) -> Snapshot:
        """Download, extract and parse the feed into a new Snapshot.

        Raises:
            FetchError: download failed
            ExtractError: archive unreadable
            ParseError: a table is unreadable as a whole
        """
        start = time.time()
        try:
            self._download()
            self._extract()
            snapshot = self.build_from_directory(self.extract_dir)
        finally:
            self._remove_archive()

        logger.info(
            f"Static GTFS built in {time.time() - start:.1f}s for route {self.route_id}: "
            f"{snapshot.stats}"
        )
        return snapshot

    def _download(self) -> None:
        logger.info(f"Downloading {self.feed_url}...")
        try:
            if self._client is not None:
                response = self._client.get(self.feed_url)
            else:
                with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                    response = client.get(self.feed_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Static feed returned HTTP {e.response.status_code} for {self.feed_url}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to download {self.feed_url}: {e}") from e

        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            with open(self.archive_path, 'wb') as f:
                f.write(response.content)
        except OSError as e:
            raise FetchError(f"Cannot save archive to {self.archive_path}: {e}") from e

        logger.info(f"Downloaded {len(response.content)} bytes to {self.archive_path}")

    def _remove_archive(self) -> None:
        try:
            self.archive_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {self.archive_path}: {e}")

    def _extract(self) -> None:
        # A previous extraction may hold tables this feed no longer ships
        try:
            if self.extract_dir.exists():
                shutil.rmtree(self.extract_dir)
            with zipfile.ZipFile(self.archive_path, 'r') as zf:
                zf.extractall(self.extract_dir)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractError(f"Cannot extract {self.archive_path}: {e}") from e

    def build_from_directory(self, gtfs_dir: Path) -> Snapshot:
        """Parse an extracted feed and filter it down to the target route."""
        dropped: Dict[str, int] = {}

        trips_rows = self._read_table(gtfs_dir, 'trips')
        all_trips, dropped['trips'] = _typed(trips_rows, Trip.from_gtfs)
        trips = {trip.id: trip for trip in all_trips if trip.route_id == self.route_id}

        stop_time_rows = self._read_table(gtfs_dir, 'stop_times')
        # Filter before typing; stop_times is by far the largest table
        stop_time_rows = [row for row in stop_time_rows if row.get('trip_id') in trips]
        stop_times, dropped['stop_times'] = _typed(stop_time_rows, StopTime.from_gtfs)

        calendar, dropped['calendar'] = _typed(
            self._read_table(gtfs_dir, 'calendar'), CalendarRule.from_gtfs
        )
        calendar_dates, dropped['calendar_dates'] = _typed(
            self._read_table(gtfs_dir, 'calendar_dates'), CalendarException.from_gtfs
        )

        for name, count in dropped.items():
            if count:
                logger.warning(f"{name}.txt: dropped {count} malformed row(s)")

        snapshot = Snapshot(
            route_id=self.route_id,
            trips=trips,
            stop_times=tuple(stop_times),
            calendar=tuple(calendar),
            calendar_dates=tuple(calendar_dates),
            built_at=datetime.now(timezone.utc),
            dropped_rows=dropped,
        )
        # Build lookup indexes before the snapshot is shared
        snapshot.service_calendar
        snapshot.stop_times_by_stop
        return snapshot

    @staticmethod
    def _read_table(gtfs_dir: Path, name: str) -> List[dict]:
        path = Path(gtfs_dir) / f"{name}.txt"
        if not path.is_file():
            logger.warning(f"{name}.txt not found in feed, using an empty table")
            return []

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ParseError(f"{name}.txt: cannot be read ({e})") from e

        text = decode_table(raw, f"{name}.txt")
        require_columns(text, f"{name}.txt", TABLES[name])
        return parse_table(text)


def _typed(rows: List[dict], factory: Callable[[dict], T]) -> Tuple[List[T], int]:
    """Apply a from_gtfs constructor to each row, dropping rows it rejects."""
    items: List[T] = []
    dropped = 0
    for row in rows:
        try:
            items.append(factory(row))
        except (ValueError, KeyError):
            dropped += 1
    return items, dropped


def refresh_schedule(store: ScheduleStore, builder: SnapshotBuilder) -> Optional[Snapshot]:
    """Build a new snapshot and publish it.

    Failures are logged and leave the store's current snapshot in place.

    Returns:
        The published snapshot, or None if the build failed
    """
    with store.refresh_lock:
        try:
            snapshot = builder.build()
        except ScheduleError as e:
            logger.error(
                f"Static GTFS refresh failed ({type(e).__name__}): {e} - "
                f"keeping {'previous snapshot' if store.is_loaded else 'unloaded state'}"
            )
            return None

        store.replace(snapshot)
        return snapshot
