"""ScheduleStore - process-wide holder of the current schedule snapshot.

Single writer (the refresh task), many readers (request handlers). The
snapshot is immutable; publishing a new one is a single reference
assignment, so a reader sees either the previous complete snapshot or the
new complete one.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from src.schedule_bc.schedule.domain.snapshot import Snapshot

logger = logging.getLogger(__name__)

EMPTY_STATS = {"trips": 0, "stopTimes": 0, "calendar": 0}


class ScheduleStore:
    """Singleton holding the latest committed Snapshot."""

    _instance: Optional['ScheduleStore'] = None
    _lock = threading.Lock()

    def __init__(self):
        self._snapshot: Optional[Snapshot] = None
        # Serialises refreshes; readers never take it
        self.refresh_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> 'ScheduleStore':
        """Get the singleton instance (thread-safe)."""
        if cls._instance is None:
            with cls._lock:
                # Double-check locking
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton (tests)."""
        with cls._lock:
            cls._instance = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def last_update(self) -> Optional[datetime]:
        snapshot = self._snapshot
        return snapshot.built_at if snapshot else None

    @property
    def stats(self) -> Dict[str, int]:
        snapshot = self._snapshot
        return snapshot.stats if snapshot else dict(EMPTY_STATS)

    def replace(self, snapshot: Snapshot) -> None:
        """Publish a fully built snapshot."""
        self._snapshot = snapshot
        logger.info(f"Schedule snapshot published: {snapshot.stats}")
