import asyncio

import pytest
from fastapi.testclient import TestClient

from ohm.artifacts.artifact_store import get_version
from ohm.diagrams.queue_store import get_job
from ohm.main_app import app
from ohm.workers.diagram_worker import process_diagram_queue

from conftest import make_circuit

client = TestClient(app)


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_queue_diagram(seed_version):
    version_id = seed_version("chat-7")
    response = client.post("/api/diagram", json={
        "circuitJson": make_circuit(3), "artifactId": version_id, "chatId": "chat-7",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "queued"
    assert body["estimatedTime"] == "1-2 minutes"

    job = asyncio.run(get_job(body["jobId"]))
    assert job.status == "queued"
    assert job.chat_id == "chat-7"
    assert asyncio.run(get_version(version_id)).diagram_status == "queued"


def test_missing_fields():
    response = client.post("/api/diagram", json={"circuitJson": make_circuit(2)})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Missing required fields"
    assert body["missing"] == ["artifactId", "chatId"]


def test_non_json_body():
    response = client.post("/api/diagram", content=b"not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["missing"] == ["circuitJson", "artifactId", "chatId"]


def test_invalid_circuit_has_field_details(seed_version):
    response = client.post("/api/diagram", json={
        "circuitJson": {"components": [{"id": "x"}], "connections": []},
        "artifactId": seed_version(),
        "chatId": "chat-1",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid circuit JSON format"
    assert any(d["field"] == "components.0.type" for d in body["details"])
    assert asyncio.run(process_diagram_queue(min_interval=0))["total"] == 0


@pytest.mark.parametrize("circuit, field", [({}, "components"), ([], "circuitJson")])
def test_empty_circuit_is_invalid_not_missing(seed_version, circuit, field):
    response = client.post("/api/diagram", json={
        "circuitJson": circuit, "artifactId": seed_version(), "chatId": "chat-1",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid circuit JSON format"
    assert any(d["field"] == field for d in body["details"])


def test_unknown_artifact():
    response = client.post("/api/diagram", json={
        "circuitJson": make_circuit(2), "artifactId": "missing", "chatId": "chat-1",
    })
    assert response.status_code == 404


def test_queue_depth(seed_job):
    seed_job(make_circuit(2, tag="a"))
    seed_job(make_circuit(2, tag="b"))
    response = client.get("/api/diagram")
    assert response.status_code == 200
    body = response.json()
    assert body["queue"] == {"queued": 2, "processing": 0, "total": 2}
    assert body["estimatedWaitTime"] == "2 minutes"


def test_status_by_artifact(seed_job):
    _, version_id = seed_job()

    async def fake(circuit_json, artifact_id, chat_id):
        return "/static/circuit-diagrams/done.png"

    asyncio.run(process_diagram_queue(generator=fake, min_interval=0))
    response = client.get("/api/diagram", params={"artifactId": version_id})
    assert response.status_code == 200
    assert response.json() == {"status": "complete", "url": "/static/circuit-diagrams/done.png", "error": None}

    assert client.get("/api/diagram", params={"artifactId": "nope"}).status_code == 404


def test_retry_failed_diagram(seed_version):
    circuit = make_circuit(3)
    version_id = seed_version("chat-3", content_json={"circuit_json": circuit})
    response = client.post(f"/api/diagram/{version_id}/retry")
    assert response.status_code == 200
    job = asyncio.run(get_job(response.json()["jobId"]))
    assert job.chat_id == "chat-3"
    assert job.circuit_json == circuit

    version = asyncio.run(get_version(version_id))
    assert version.diagram_status == "queued"
    assert version.generation_attempts == 1


def test_retry_errors(seed_version):
    assert client.post("/api/diagram/missing/retry").status_code == 404
    no_circuit = seed_version(content_json={"instructions": "wire it"})
    response = client.post(f"/api/diagram/{no_circuit}/retry")
    assert response.status_code == 400


def test_diagram_stats(seed_job):
    seed_job(make_circuit(2, tag="a"))
    _, failing = seed_job(make_circuit(2, tag="b"))

    async def fake(circuit_json, artifact_id, chat_id):
        if artifact_id == failing:
            raise RuntimeError("boom")
        return "/ok.png"

    asyncio.run(process_diagram_queue(generator=fake, min_interval=0))
    seed_job(make_circuit(2, tag="c"))

    response = client.get("/api/diagram/stats")
    assert response.json() == {"total": 3, "complete": 1, "failed": 1, "pending": 1}


def test_cache_stats_and_cleanup(seed_job):
    seed_job()

    async def fake(circuit_json, artifact_id, chat_id):
        return "/ok.png"

    asyncio.run(process_diagram_queue(generator=fake, min_interval=0))
    stats = client.get("/api/diagram/cache/stats").json()
    assert stats["total_entries"] == 1
    assert "hit_rate" in stats

    assert client.post("/api/diagram/cache/cleanup").status_code == 401
    response = client.post(
        "/api/diagram/cache/cleanup",
        headers={"Authorization": "Bearer test-cron-secret"},
        params={"days_old": 0, "max_access_count": 0},
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == 0
