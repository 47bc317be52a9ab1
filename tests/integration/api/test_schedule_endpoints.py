"""Integration tests for the static schedule API.

These run the FastAPI app in-process against an in-memory snapshot; no
network access is needed.
"""

import importlib
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from app import app
from src.schedule_bc.schedule.infrastructure.snapshot_builder import SnapshotBuilder
from tests.factories import make_snapshot

# The routers package re-exports each APIRouter under its module name
schedule_module = importlib.import_module("adapters.http.api.metro.routers.schedule_router")
realtime_module = importlib.import_module("adapters.http.api.metro.routers.realtime_router")
get_now = schedule_module.get_now

PARIS = ZoneInfo("Europe/Paris")
MONDAY_8AM = datetime(2026, 1, 5, 8, 0, tzinfo=PARIS)


def feed_builder(tmp_path, response):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: response))
    return SnapshotBuilder("https://example.test/gtfs.zip", "TCAR:90", tmp_path, client=client)


@pytest.fixture
def frozen_now():
    app.dependency_overrides[get_now] = lambda: MONDAY_8AM
    yield MONDAY_8AM
    app.dependency_overrides.pop(get_now, None)


@pytest.fixture
def loaded_store(store):
    store.replace(make_snapshot(
        trips=[
            ("N1", 1, "WEEK", "Boulingrin"),
            ("N2", 1, "WEEK", None),
            ("S1", 0, "WEEK", "Georges Braque"),
        ],
        stop_times=[
            ("N1", "STOP_A", "08:10:00"),
            ("N2", "STOP_A", "07:50:00"),
            ("S1", "STOP_A", "08:05:00"),
            ("N2", "STOP_B", "08:15:00"),
        ],
    ))
    return store


class TestStaticScheduleEndpoint:
    """GET /api/static"""

    def test_missing_stop_id(self, client):
        response = client.get("/api/static?direction=boulingrin")
        assert response.status_code == 400
        assert response.json()["missing"] == ["stopId"]

    def test_missing_direction(self, client):
        response = client.get("/api/static?stopId=STOP_A")
        assert response.status_code == 400
        assert "direction" in response.json()["error"]

    def test_missing_both(self, client):
        response = client.get("/api/static")
        assert response.status_code == 400
        assert response.json()["missing"] == ["stopId", "direction"]

    def test_not_loaded(self, client):
        response = client.get("/api/static?stopId=STOP_A&direction=boulingrin")
        assert response.status_code == 200
        assert response.json() == {"schedule": [], "message": "not loaded"}

    def test_schedule(self, client, loaded_store, frozen_now):
        response = client.get("/api/static?stopId=STOP_A&direction=boulingrin")
        assert response.status_code == 200
        data = response.json()

        assert data["schedule"] == [{
            "arrival": int(datetime(2026, 1, 5, 8, 10, tzinfo=PARIS).timestamp()),
            "tripId": "N1",
            "isStatic": True,
            "direction": "Boulingrin",
            "headsign": "Boulingrin",
        }]
        assert data["lastUpdate"] == loaded_store.snapshot.built_at.isoformat()
        assert "message" not in data

    def test_direction_labels(self, client, loaded_store, frozen_now):
        gb = client.get("/api/static?stopId=STOP_A&direction=gb").json()["schedule"]
        techno = client.get("/api/static?stopId=STOP_A&direction=technopole").json()["schedule"]

        assert [a["tripId"] for a in gb] == [a["tripId"] for a in techno] == ["S1"]
        assert gb[0]["direction"] == "Georges Braque"
        assert techno[0]["direction"] == "Technopôle"

    def test_empty_headsign(self, client, loaded_store, frozen_now):
        schedule = client.get("/api/static?stopId=STOP_B&direction=boulingrin").json()["schedule"]
        assert schedule[0]["headsign"] == ""

    def test_unexpected_failure_is_a_server_error(self, client, loaded_store, frozen_now, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(schedule_module, "project_arrivals", broken)
        response = client.get("/api/static?stopId=STOP_A&direction=boulingrin")
        assert response.status_code == 500

        # The app keeps serving
        assert client.get("/api/gtfs-status").status_code == 200


class TestGtfsStatusEndpoint:
    """GET /api/gtfs-status"""

    def test_not_loaded(self, client):
        response = client.get("/api/gtfs-status")
        assert response.status_code == 200
        assert response.json() == {
            "loaded": False,
            "lastUpdate": None,
            "stats": {"trips": 0, "stopTimes": 0, "calendar": 0},
        }

    def test_loaded(self, client, loaded_store):
        data = client.get("/api/gtfs-status").json()
        assert data["loaded"] is True
        assert data["lastUpdate"] == loaded_store.snapshot.built_at.isoformat()
        assert data["stats"] == {"trips": 3, "stopTimes": 4, "calendar": 1}


class TestOperationalEndpoints:
    """Health, scheduler status and admin reload."""

    def test_health_before_load(self, client):
        assert client.get("/health").status_code == 503

    def test_health_after_load(self, client, loaded_store):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["schedule"]["stats"]["trips"] == 3

    def test_scheduler_status(self, client):
        data = client.get("/api/scheduler/status").json()
        assert data["running"] is False
        assert data["interval_seconds"] == 24 * 3600

    def test_reload_requires_token(self, client):
        assert client.post("/admin/reload-gtfs").status_code == 401

    def test_reload_rejects_wrong_token(self, client):
        response = client.post("/admin/reload-gtfs", headers={"X-Admin-Token": "wrong"})
        assert response.status_code == 401

    def test_reload_is_rate_limited(self, client):
        statuses = [
            client.post("/admin/reload-gtfs", headers={"X-Admin-Token": "wrong"}).status_code
            for _ in range(3)
        ]
        assert statuses == [401, 401, 429]

    def test_reload_limit_is_per_forwarded_client(self, client):
        def post_from(address):
            return client.post(
                "/admin/reload-gtfs",
                headers={"X-Admin-Token": "wrong", "X-Forwarded-For": f"{address}, 10.0.0.254"},
            ).status_code

        assert [post_from("10.0.0.1") for _ in range(3)] == [401, 401, 429]
        assert post_from("10.0.0.2") == 401

    def test_reload_runs_through_scheduler(self, client, monkeypatch, tmp_path, sample_feed_zip):
        from core.config import settings
        from src.schedule_bc.schedule.infrastructure.refresh_scheduler import schedule_scheduler

        builder = feed_builder(tmp_path, httpx.Response(200, content=sample_feed_zip))
        monkeypatch.setattr(schedule_scheduler, "builder", builder)
        before = schedule_scheduler.status["refresh_count"]

        response = client.post("/admin/reload-gtfs", headers={"X-Admin-Token": settings.ADMIN_TOKEN})

        assert response.status_code == 200
        assert response.json()["status"] == "reload_initiated"
        # Background tasks finish before TestClient returns
        assert schedule_scheduler.status["refresh_count"] == before + 1
        assert client.get("/api/gtfs-status").json()["loaded"] is True

    def test_failed_reload_shows_in_scheduler_status(self, client, monkeypatch, tmp_path):
        from core.config import settings
        from src.schedule_bc.schedule.infrastructure.refresh_scheduler import schedule_scheduler

        monkeypatch.setattr(schedule_scheduler, "builder", feed_builder(tmp_path, httpx.Response(503)))
        before = schedule_scheduler.status["error_count"]

        client.post("/admin/reload-gtfs", headers={"X-Admin-Token": settings.ADMIN_TOKEN})

        status = client.get("/api/scheduler/status").json()
        assert status["error_count"] == before + 1
        assert status["last_error"] is not None


class TestRealtimeRelay:
    """GET /api/metro"""

    def test_relays_upstream_json(self, client, monkeypatch):
        feed = {"entity": [{"tripUpdate": {"trip": {"routeId": "TCAR:90"}}}]}

        async def fake_fetch(url):
            return feed

        monkeypatch.setattr(realtime_module, "fetch_trip_updates", fake_fetch)
        response = client.get("/api/metro")

        assert response.status_code == 200
        assert response.json() == feed

    def test_upstream_failure(self, client, monkeypatch):
        async def failing_fetch(url):
            raise httpx.ConnectError("unreachable")

        monkeypatch.setattr(realtime_module, "fetch_trip_updates", failing_fetch)
        assert client.get("/api/metro").status_code == 502

    def test_count_route_entities(self):
        feed = {"entity": [
            {"tripUpdate": {"trip": {"routeId": "TCAR:90"}}},
            {"tripUpdate": {"trip": {"routeId": "TCAR:10"}}},
            {"vehicle": {}},
        ]}
        assert realtime_module.count_route_entities(feed, "TCAR:90") == 1
