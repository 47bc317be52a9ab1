"""Pytest configuration and fixtures."""

import os

# No background downloads while testing
os.environ["REFRESH_ENABLED"] = "false"
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token-0123456789abcdef0123")
os.environ.setdefault("GTFS_STATIC_URL", "https://example.test/gtfs.zip")

import pytest
from fastapi.testclient import TestClient

from app import app
from core.rate_limiter import limiter
from src.schedule_bc.schedule.infrastructure.schedule_store import ScheduleStore
from tests.factories import SAMPLE_FEED, build_gtfs_zip


@pytest.fixture
def store():
    """Fresh ScheduleStore singleton for each test."""
    ScheduleStore.reset_instance()
    yield ScheduleStore.get_instance()
    ScheduleStore.reset_instance()


@pytest.fixture
def client(store):
    """Create a test client for the FastAPI app."""
    # Limits are per client address and every test shares one
    limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sample_feed_zip():
    return build_gtfs_zip(SAMPLE_FEED)
