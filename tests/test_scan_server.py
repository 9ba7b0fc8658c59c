import asyncio

import pytest

from geodata.core.config import Settings
from geodata.jobs import scan_server
from geodata.models import BusinessRecord, LocationType, ScanState


@pytest.fixture(autouse=True)
def server(monkeypatch, tmp_path):
    submitted = {}

    class DummyExecutor:
        def submit(self, fn, *args):
            submitted["fn"] = fn
            submitted["args"] = args

    settings = Settings(google_api_key="key", denue_api_token="token", output_dir=str(tmp_path))
    monkeypatch.setattr(scan_server, "_executor", DummyExecutor())
    monkeypatch.setattr(scan_server, "_registry", scan_server.ScanRegistry())
    monkeypatch.setattr(scan_server, "get_settings", lambda: settings)
    yield submitted


def test_health_endpoint():
    client = scan_server.app.test_client()
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["google_configured"] is True


def test_enqueue_scan_validates_payload():
    client = scan_server.app.test_client()
    assert client.post("/scans", json={}).status_code == 400
    assert client.post("/scans", json={"mode": "everything"}).status_code == 400
    assert client.post("/scans", json={"mode": "inegi", "google_csv": "data/g.csv"}).status_code == 400


def test_enqueue_scan_submits_job_and_rejects_concurrent_scans(server):
    client = scan_server.app.test_client()

    response = client.post("/scans", json={"mode": "INEGI"})

    assert response.status_code == 202
    scan_id = response.get_json()["data"]["scan_id"]
    assert server["fn"] is scan_server._run_job_safe
    submitted_id, job = server["args"]
    assert submitted_id == scan_id
    assert job.mode.value == "inegi"

    assert client.post("/scans", json={"mode": "google"}).status_code == 409

    status = client.get(f"/scans/{scan_id}").get_json()["data"]
    assert status["state"] == "idle"
    assert status["mode"] == "inegi"
    assert status["path"] is None


def test_unknown_scan_returns_404():
    client = scan_server.app.test_client()
    assert client.get("/scans/nope").status_code == 404
    assert client.post("/scans/nope/cancel").status_code == 404


def test_cancel_marks_job_cancelled(server):
    client = scan_server.app.test_client()
    scan_id = client.post("/scans", json={"mode": "inegi"}).get_json()["data"]["scan_id"]
    _, job = server["args"]

    assert client.post(f"/scans/{scan_id}/cancel").status_code == 202
    scan_server._run_job_safe(scan_id, job)

    assert job.state is ScanState.CANCELLED
    status = client.get(f"/scans/{scan_id}").get_json()["data"]
    assert status["state"] == "cancelled"
    assert status["zones_completed"] == 0
    assert status["percent"] == 0.0
    assert client.post("/scans", json={"mode": "google"}).status_code == 202


def test_run_job_safe_marks_crashed_jobs_failed():
    class ExplodingJob:
        state = ScanState.IDLE

        async def run(self):
            raise RuntimeError("boom")

    job = ExplodingJob()
    scan_server._run_job_safe("abc", job)
    assert job.state is ScanState.FAILED


def test_businesses_validates_query():
    client = scan_server.app.test_client()
    assert client.get("/businesses").status_code == 400
    assert client.get("/businesses?lat=19.4&lng=abc").status_code == 400
    assert client.get("/businesses?lat=19.4&lng=-99.1&radius=0").status_code == 400
    assert client.get("/businesses?lat=19.4&lng=-99.1&radius=9000").status_code == 400
    assert client.get("/businesses?lat=19.4&lng=-99.1&categories=food,spa").status_code == 400


def test_businesses_requires_denue_token(monkeypatch):
    monkeypatch.setattr(scan_server, "get_settings", lambda: Settings())
    client = scan_server.app.test_client()

    assert client.get("/businesses?lat=19.4&lng=-99.1").status_code == 503


def test_businesses_returns_lookup_records(monkeypatch):
    seen = {}

    class FakeLookup:
        async def fetch_businesses(self, categories, latitude, longitude, radius_meters):
            seen.update(categories=categories, latitude=latitude, longitude=longitude, radius=radius_meters)
            await asyncio.sleep(0)
            return [
                BusinessRecord(
                    source="INEGI",
                    primary_type="food",
                    name="Taqueria",
                    latitude=latitude,
                    longitude=longitude,
                    external_id="42",
                )
            ]

    monkeypatch.setattr(scan_server._registry, "lookup", lambda settings: FakeLookup())
    client = scan_server.app.test_client()

    response = client.get("/businesses?lat=19.4&lng=-99.1&radius=1500&categories=food,cultural")

    assert response.status_code == 200
    body = response.get_json()
    assert body["count"] == 1
    assert body["data"][0]["external_id"] == "42"
    assert body["data"][0]["rating"] is None
    assert seen["categories"] == [LocationType.FOOD, LocationType.CULTURAL]
    assert seen["radius"] == 1500


def test_parse_categories_defaults_to_all_but_others():
    categories = scan_server._parse_categories("")
    assert LocationType.OTHERS not in categories
    assert len(categories) == 6


def test_enqueue_scan_rejects_google_csv_outside_output_dir(tmp_path):
    client = scan_server.app.test_client()

    for google_csv in ("../outside.csv", str(tmp_path.parent / "outside.csv"), "/etc/passwd"):
        response = client.post("/scans", json={"mode": "merged", "google_csv": google_csv})
        assert response.status_code == 400
        assert "output directory" in response.get_json()["error"]


def test_enqueue_scan_resolves_google_csv_under_output_dir(server, tmp_path):
    client = scan_server.app.test_client()

    response = client.post("/scans", json={"mode": "merged", "google_csv": "google.csv"})

    assert response.status_code == 202
    _, job = server["args"]
    assert job.google_csv == (tmp_path / "google.csv").resolve()
    assert job.needs_google_scan is False


def test_rejected_scan_releases_its_session(monkeypatch):
    built = []

    class DummyJob:
        state = ScanState.IDLE

        def __init__(self, mode):
            self.mode = mode
            self.closed = False

        def close(self):
            self.closed = True

    def fake_build_job(mode, settings, **kwargs):
        job = DummyJob(mode)
        built.append(job)
        return job

    monkeypatch.setattr(scan_server, "build_job", fake_build_job)
    client = scan_server.app.test_client()

    assert client.post("/scans", json={"mode": "inegi"}).status_code == 202
    assert client.post("/scans", json={"mode": "google"}).status_code == 409

    first, second = built
    assert first.closed is False
    assert second.closed is True
