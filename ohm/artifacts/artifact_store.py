# ohm/artifacts/artifact_store.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ohm.db import get_sessionmaker
from ohm.models.artifacts import ARTIFACT_TYPES, Artifact, ArtifactVersion
from ohm.models.diagrams import COMPLETE, FAILED, PROCESSING, QUEUED

logger = logging.getLogger("uvicorn.error")


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def artifact_to_dict(a: Artifact) -> Dict[str, Any]:
    return {
        "id": a.id,
        "chat_id": a.chat_id,
        "type": a.type,
        "title": a.title,
        "current_version": a.current_version,
        "metadata": a.metadata_json or {},
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
    }


def version_to_dict(v: ArtifactVersion) -> Dict[str, Any]:
    return {
        "id": v.id,
        "artifact_id": v.artifact_id,
        "version_number": v.version_number,
        "content": v.content,
        "content_json": v.content_json,
        "fritzing_url": v.fritzing_url,
        "diagram_status": v.diagram_status,
        "generation_attempts": v.generation_attempts,
        "error_message": v.error_message,
        "change_summary": v.change_summary,
        "created_at": _iso(v.created_at),
        "updated_at": _iso(v.updated_at),
    }


async def _append_version(session: AsyncSession, artifact: Artifact, *,
                          content: Optional[str], content_json: Any,
                          change_summary: Optional[str]) -> ArtifactVersion:
    next_no = (artifact.current_version or 0) + 1
    version = ArtifactVersion(
        artifact_id=artifact.id,
        version_number=next_no,
        content=content,
        content_json=content_json,
        change_summary=change_summary,
        generation_attempts=0,
    )
    session.add(version)
    artifact.current_version = next_no
    artifact.updated_at = datetime.utcnow()
    return version


async def create_artifact(*, chat_id: Optional[str], type: str, title: str,
                          content: Optional[str] = None, content_json: Any = None,
                          change_summary: Optional[str] = None,
                          metadata: Optional[Dict[str, Any]] = None) -> Tuple[Artifact, ArtifactVersion]:
    """Create an artifact together with its first version."""
    if type not in ARTIFACT_TYPES:
        raise ValueError(f"Unknown artifact type: {type}")
    async with get_sessionmaker()() as session:
        artifact = Artifact(chat_id=chat_id, type=type, title=title,
                            current_version=0, metadata_json=metadata or {})
        session.add(artifact)
        await session.flush()
        version = await _append_version(session, artifact, content=content,
                                        content_json=content_json, change_summary=change_summary)
        await session.commit()
    logger.info("[ARTIFACT] created %s artifact %s (version %s)", type, artifact.id, version.id)
    return artifact, version


async def create_version(artifact_id: str, *, content: Optional[str] = None, content_json: Any = None,
                         change_summary: Optional[str] = None) -> Optional[ArtifactVersion]:
    """Append the next version; None when the artifact does not exist."""
    async with get_sessionmaker()() as session:
        artifact = await session.get(Artifact, artifact_id, with_for_update=True)
        if artifact is None:
            return None
        version = await _append_version(session, artifact, content=content,
                                        content_json=content_json, change_summary=change_summary)
        await session.commit()
    return version


async def get_artifact(artifact_id: str) -> Optional[Artifact]:
    async with get_sessionmaker()() as session:
        return await session.get(Artifact, artifact_id)


async def get_version(version_id: str) -> Optional[ArtifactVersion]:
    async with get_sessionmaker()() as session:
        return await session.get(ArtifactVersion, version_id)


async def get_latest_artifact(chat_id: str, type: str) -> Optional[Artifact]:
    async with get_sessionmaker()() as session:
        return (await session.execute(
            select(Artifact)
            .where(Artifact.chat_id == chat_id, Artifact.type == type)
            .order_by(Artifact.created_at.desc())
            .limit(1)
        )).scalar_one_or_none()


async def set_diagram_result(session: AsyncSession, version_id: str, *, status: str,
                             url: Optional[str] = None, error: Optional[str] = None) -> bool:
    """
    Write a diagram outcome onto an artifact version inside the caller's session.
    complete → url set and error cleared; failed → error recorded.
    """
    values: Dict[str, Any] = {"diagram_status": status, "updated_at": datetime.utcnow()}
    if status == COMPLETE:
        values["fritzing_url"] = url
        values["error_message"] = None
    elif status == FAILED:
        values["error_message"] = error
    res = await session.execute(
        update(ArtifactVersion).where(ArtifactVersion.id == version_id).values(**values)
    )
    if not res.rowcount:
        logger.warning("[ARTIFACT] version %s not found while setting diagram_status=%s", version_id, status)
    return bool(res.rowcount)


async def get_diagram_stats() -> Dict[str, int]:
    async with get_sessionmaker()() as session:
        rows = (await session.execute(
            select(ArtifactVersion.diagram_status, func.count(ArtifactVersion.id))
            .where(ArtifactVersion.diagram_status.is_not(None))
            .group_by(ArtifactVersion.diagram_status)
        )).all()
    counts = {status: int(n) for status, n in rows}
    return {
        "total": sum(counts.values()),
        "complete": counts.get(COMPLETE, 0),
        "failed": counts.get(FAILED, 0),
        "pending": counts.get(QUEUED, 0) + counts.get(PROCESSING, 0),
    }
