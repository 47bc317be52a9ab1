"""Static GTFS refresh scheduler.

Rebuilds the schedule snapshot once at startup and then on a fixed
interval, in a background task independent of request serving.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from core.config import settings
from src.schedule_bc.schedule.infrastructure.schedule_store import ScheduleStore
from src.schedule_bc.schedule.infrastructure.snapshot_builder import SnapshotBuilder, refresh_schedule

logger = logging.getLogger(__name__)


class ScheduleRefreshScheduler:
    """Background scheduler for static GTFS snapshot refreshes."""

    def __init__(
        self,
        builder: SnapshotBuilder,
        store: Optional[ScheduleStore] = None,
        interval_seconds: int = 24 * 3600,
        timeout_seconds: int = 600,
    ):
        self.builder = builder
        self._store = store
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_refresh: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._refresh_count = 0
        self._error_count = 0

    @property
    def store(self) -> ScheduleStore:
        return self._store or ScheduleStore.get_instance()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def status(self) -> dict:
        """Get scheduler status."""
        return {
            "running": self._running,
            "last_refresh": self._last_refresh.isoformat() if self._last_refresh else None,
            "refresh_count": self._refresh_count,
            "error_count": self._error_count,
            "interval_seconds": self.interval_seconds,
            "last_error": self._last_error,
        }

    async def start(self):
        """Start the background refresh task."""
        if self._running:
            logger.warning("Static GTFS scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Static GTFS scheduler started (interval: {self.interval_seconds}s)")

    async def stop(self):
        """Stop the background refresh task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Static GTFS scheduler stopped")

    async def trigger(self):
        """Run one refresh now, outside the regular interval.

        Counted in status like a scheduled cycle. Works whether or not the
        background loop is running.
        """
        logger.info("Static GTFS refresh triggered")
        await self._run_once()

    async def _refresh_loop(self):
        """Main refresh loop: refresh immediately, then every interval."""
        while self._running:
            await self._run_once()
            await asyncio.sleep(self.interval_seconds)

    async def _run_once(self):
        try:
            await self._do_refresh()
        except asyncio.CancelledError:
            logger.info("Static GTFS refresh cancelled")
            raise
        except asyncio.TimeoutError:
            self._record_error(f"timeout after {self.timeout_seconds}s")
        except Exception as e:
            self._record_error(f"{type(e).__name__}: {e}")

    def _record_error(self, message: str) -> None:
        self._error_count += 1
        self._last_error = message
        logger.error(f"Static GTFS refresh error: {message} - will retry in {self.interval_seconds}s")

    async def _do_refresh(self):
        """Perform a single refresh in the default executor with timeout."""
        loop = asyncio.get_running_loop()
        snapshot = await asyncio.wait_for(
            loop.run_in_executor(None, refresh_schedule, self.store, self.builder),
            timeout=self.timeout_seconds,
        )

        self._last_refresh = datetime.now(timezone.utc)
        if snapshot is None:
            self._record_error("build failed, previous snapshot kept")
            return

        self._refresh_count += 1
        self._last_error = None
        logger.info(f"Static GTFS refresh #{self._refresh_count}: {snapshot.stats}")


def create_scheduler() -> ScheduleRefreshScheduler:
    builder = SnapshotBuilder(
        feed_url=settings.GTFS_STATIC_URL,
        route_id=settings.TARGET_ROUTE_ID,
        work_dir=settings.GTFS_WORK_DIR,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    return ScheduleRefreshScheduler(
        builder,
        interval_seconds=settings.refresh_interval_seconds,
        timeout_seconds=settings.REFRESH_TIMEOUT_SECONDS,
    )


# Global scheduler instance
schedule_scheduler = create_scheduler()


@asynccontextmanager
async def lifespan_with_scheduler(app):
    """FastAPI lifespan context manager that starts/stops the refresh scheduler."""
    if settings.REFRESH_ENABLED:
        await schedule_scheduler.start()
    else:
        logger.info("Static GTFS refresh disabled (REFRESH_ENABLED=false)")

    yield

    await schedule_scheduler.stop()
