import asyncio

import pytest
from fastapi.testclient import TestClient

from ohm.config import settings
from ohm.diagrams.queue_store import get_job
from ohm.main_app import app
from ohm.workers import diagram_worker

from conftest import CRON_SECRET, make_circuit

client = TestClient(app)
URL = "/api/cron/process-diagrams"


@pytest.fixture(autouse=True)
def fast_fake_generator(monkeypatch):
    calls = []

    async def fake(circuit_json, artifact_id, chat_id):
        calls.append(artifact_id)
        return f"/static/circuit-diagrams/{artifact_id}.png"

    monkeypatch.setattr(diagram_worker, "generate_fritzing_diagram", fake)
    monkeypatch.setattr(settings, "DIAGRAM_MIN_INTERVAL", 0.0)
    return calls


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer wrong"},
    {"Authorization": CRON_SECRET},
    {"Authorization": f"Basic {CRON_SECRET}"},
])
def test_unauthorized_does_not_touch_queue(seed_job, fast_fake_generator, headers):
    job_id, _ = seed_job()
    response = client.get(URL, headers=headers)
    assert response.status_code == 401
    assert fast_fake_generator == []
    assert asyncio.run(get_job(job_id)).status == "queued"


def test_no_configured_secret_locks_endpoint(seed_job, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    job_id, _ = seed_job()
    response = client.get(URL, headers={"Authorization": f"Bearer {CRON_SECRET}"})
    assert response.status_code == 401
    assert asyncio.run(get_job(job_id)).status == "queued"


def test_empty_queue():
    response = client.get(URL, headers={"Authorization": f"Bearer {CRON_SECRET}"})
    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 0
    assert body["success"] is True
    assert "duration" in body
    assert response.headers["cache-control"] == "no-store"


def test_processes_queue(seed_job, fast_fake_generator):
    a, _ = seed_job(make_circuit(2, tag="a"))
    b, _ = seed_job(make_circuit(2, tag="a"))   # same circuit → cache hit
    response = client.post(URL, headers={"Authorization": f"Bearer {CRON_SECRET}"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert {k: body[k] for k in ("processed", "cached", "failed", "total")} == {
        "processed": 2, "cached": 1, "failed": 0, "total": 2,
    }
    assert isinstance(body["duration"], int)
    assert len(fast_fake_generator) == 1
    assert asyncio.run(get_job(a)).status == "complete"
    assert asyncio.run(get_job(b)).status == "complete"


def test_fatal_error_returns_500(monkeypatch):
    async def broken(**kwargs):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(diagram_worker, "process_diagram_queue", broken)
    response = client.get(URL, headers={"Authorization": f"Bearer {CRON_SECRET}"})
    assert response.status_code == 500
    assert response.json()["error"] == "database is gone"
