# ohm/diagrams/queue_store.py
# diagram_queue persistence: enqueue, claim, finish, depth.
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update

from ohm.artifacts.artifact_store import set_diagram_result
from ohm.db import get_sessionmaker
from ohm.models.artifacts import Artifact, ArtifactVersion
from ohm.models.diagrams import COMPLETE, FAILED, PROCESSING, QUEUED, DiagramJob

logger = logging.getLogger("uvicorn.error")


class ArtifactNotFound(LookupError):
    pass


class NoCircuitJson(ValueError):
    pass


def job_to_dict(job: DiagramJob) -> Dict[str, Any]:
    return {
        "id": job.id,
        "artifact_id": job.artifact_id,
        "chat_id": job.chat_id,
        "status": job.status,
        "error_message": job.error_message,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "processed_at": job.processed_at.isoformat() if job.processed_at else None,
    }


async def enqueue_diagram(circuit_json: Any, artifact_id: str, chat_id: str) -> DiagramJob:
    """
    Mark the artifact version queued and insert a queue row in one transaction.
    Raises ArtifactNotFound if the version does not exist.
    """
    async with get_sessionmaker()() as session:
        found = await set_diagram_result(session, artifact_id, status=QUEUED)
        if not found:
            await session.rollback()
            raise ArtifactNotFound(artifact_id)
        job = DiagramJob(circuit_json=circuit_json, artifact_id=artifact_id,
                         chat_id=chat_id, status=QUEUED)
        session.add(job)
        await session.commit()
    logger.info("[DIAGRAM] queued job %s for artifact %s", job.id, artifact_id)
    return job


async def fetch_queued(limit: int) -> List[DiagramJob]:
    """Oldest queued jobs first (FIFO by created_at)."""
    async with get_sessionmaker()() as session:
        rows = (await session.execute(
            select(DiagramJob)
            .where(DiagramJob.status == QUEUED)
            .order_by(DiagramJob.created_at.asc(), DiagramJob.id.asc())
            .limit(limit)
        )).scalars().all()
    return list(rows)


async def claim_job(job_id: str) -> bool:
    """
    queued → processing, only if still queued. False means another
    run got there first.
    """
    async with get_sessionmaker()() as session:
        res = await session.execute(
            update(DiagramJob)
            .where(DiagramJob.id == job_id, DiagramJob.status == QUEUED)
            .values(status=PROCESSING)
        )
        await session.commit()
    return bool(res.rowcount)


async def complete_job(job: DiagramJob, url: str) -> None:
    async with get_sessionmaker()() as session:
        await set_diagram_result(session, job.artifact_id, status=COMPLETE, url=url)
        await session.execute(
            update(DiagramJob)
            .where(DiagramJob.id == job.id)
            .values(status=COMPLETE, error_message=None, processed_at=datetime.utcnow())
        )
        await session.commit()


async def fail_job(job: DiagramJob, error: str) -> None:
    async with get_sessionmaker()() as session:
        await set_diagram_result(session, job.artifact_id, status=FAILED, error=error)
        await session.execute(
            update(DiagramJob)
            .where(DiagramJob.id == job.id)
            .values(status=FAILED, error_message=error, processed_at=datetime.utcnow())
        )
        await session.commit()


async def get_job(job_id: str) -> Optional[DiagramJob]:
    async with get_sessionmaker()() as session:
        return await session.get(DiagramJob, job_id)


async def queue_depth() -> Dict[str, int]:
    async with get_sessionmaker()() as session:
        rows = (await session.execute(
            select(DiagramJob.status, func.count(DiagramJob.id))
            .where(DiagramJob.status.in_((QUEUED, PROCESSING)))
            .group_by(DiagramJob.status)
        )).all()
    counts = {status: int(n) for status, n in rows}
    queued = counts.get(QUEUED, 0)
    processing = counts.get(PROCESSING, 0)
    return {"queued": queued, "processing": processing, "total": queued + processing}


async def retry_diagram_generation(artifact_id: str) -> DiagramJob:
    """
    Re-queue a diagram from the circuit stored on the version
    (content_json.circuit_json). Bumps generation_attempts.
    """
    async with get_sessionmaker()() as session:
        row = (await session.execute(
            select(ArtifactVersion, Artifact.chat_id)
            .join(Artifact, Artifact.id == ArtifactVersion.artifact_id)
            .where(ArtifactVersion.id == artifact_id)
        )).first()
        if row is None:
            raise ArtifactNotFound(artifact_id)
        version, chat_id = row

        content = version.content_json if isinstance(version.content_json, dict) else {}
        circuit_json = content.get("circuit_json")
        if not circuit_json:
            raise NoCircuitJson("No circuit JSON found in artifact")

        version.diagram_status = QUEUED
        version.error_message = None
        version.generation_attempts = (version.generation_attempts or 0) + 1
        version.updated_at = datetime.utcnow()

        job = DiagramJob(circuit_json=circuit_json, artifact_id=artifact_id,
                         chat_id=chat_id or "", status=QUEUED)
        session.add(job)
        await session.commit()
    logger.info("[DIAGRAM] retry queued job %s for artifact %s (attempt %d)",
                job.id, artifact_id, version.generation_attempts)
    return job
