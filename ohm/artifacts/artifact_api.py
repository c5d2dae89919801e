# ohm/artifacts/artifact_api.py
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from ohm.artifacts.artifact_store import (
    artifact_to_dict,
    create_artifact,
    create_version,
    get_artifact,
    get_version,
    version_to_dict,
)

router = APIRouter(prefix="/api", tags=["Artifacts"])


class ArtifactCreate(BaseModel):
    chat_id: Optional[str] = None
    type: str
    title: str
    content: Optional[str] = None
    content_json: Optional[Any] = None
    change_summary: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class VersionCreate(BaseModel):
    content: Optional[str] = None
    content_json: Optional[Any] = None
    change_summary: Optional[str] = None


@router.post("/artifacts")
async def api_create_artifact(payload: ArtifactCreate = Body(...)):
    try:
        artifact, version = await create_artifact(
            chat_id=payload.chat_id,
            type=payload.type,
            title=payload.title,
            content=payload.content,
            content_json=payload.content_json,
            change_summary=payload.change_summary,
            metadata=payload.metadata,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "artifact": artifact_to_dict(artifact), "version": version_to_dict(version)}


@router.post("/artifacts/{artifact_id}/versions")
async def api_create_version(artifact_id: str, payload: VersionCreate = Body(...)):
    version = await create_version(
        artifact_id,
        content=payload.content,
        content_json=payload.content_json,
        change_summary=payload.change_summary,
    )
    if version is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return {"ok": True, "version": version_to_dict(version)}


@router.get("/artifacts/{artifact_id}")
async def api_get_artifact(artifact_id: str):
    artifact = await get_artifact(artifact_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return artifact_to_dict(artifact)


@router.get("/artifact-versions/{version_id}")
async def api_get_version(version_id: str):
    version = await get_version(version_id)
    if version is None:
        raise HTTPException(status_code=404, detail="Artifact version not found")
    return version_to_dict(version)
