import asyncio
import os

# settings are read at import time; set test values before anything imports ohm
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("BYTEZ_API_KEY", "test-bytez-key")
os.environ.setdefault("DIAGRAM_WORKER_ENABLED", "false")

import pytest

from ohm.config import settings
from ohm.db import dispose_engine, init_db
from ohm.artifacts.artifact_store import create_artifact
from ohm.diagrams.queue_store import enqueue_diagram

CRON_SECRET = "test-cron-secret"


def make_circuit(n_components: int = 2, tag: str = "a") -> dict:
    components = [{"id": "arduino", "type": "Arduino Uno"}]
    components += [
        {"id": f"{tag}{i}", "type": "LED", "properties": {"color": "red"}}
        for i in range(1, n_components)
    ]
    connections = [
        {"from": f"arduino.D{i + 1}", "to": f"{tag}{i}.anode", "color": "yellow"}
        for i in range(1, n_components)
    ]
    return {"components": components, "connections": connections}


async def _reset():
    await dispose_engine()
    await init_db()


@pytest.fixture(autouse=True)
def fresh_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'ohm-test.db'}")
    monkeypatch.setattr(settings, "DIAGRAM_STORAGE_DIR", str(tmp_path / "circuit-diagrams"))
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(settings, "BYTEZ_API_KEY", "test-bytez-key")
    asyncio.run(_reset())
    yield
    asyncio.run(dispose_engine())


@pytest.fixture
def seed_version():
    """Create a wiring artifact and return its version id."""
    def _seed(chat_id: str = "chat-1", content_json=None) -> str:
        _, version = asyncio.run(create_artifact(
            chat_id=chat_id, type="wiring", title="Wiring", content_json=content_json,
        ))
        return version.id
    return _seed


@pytest.fixture
def seed_job(seed_version):
    """Create an artifact version and queue a diagram job for it; returns (job_id, version_id)."""
    def _seed(circuit=None, chat_id: str = "chat-1"):
        version_id = seed_version(chat_id)
        job = asyncio.run(enqueue_diagram(circuit or make_circuit(), version_id, chat_id))
        return job.id, version_id
    return _seed
