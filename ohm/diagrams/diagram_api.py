#=======================================================================================
# ohm/diagrams/diagram_api.py
# Queue circuit diagrams for generation and report on their progress.
# Called by the wiring agent after it has produced circuit JSON.
#=======================================================================================

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ohm.artifacts.artifact_store import get_diagram_stats, get_version
from ohm.diagrams.cache import cleanup_cache, get_cache_hit_rate, get_cache_stats
from ohm.diagrams.circuit import circuit_errors
from ohm.diagrams.cron_api import verify_cron_secret
from ohm.diagrams.queue_store import (
    ArtifactNotFound,
    NoCircuitJson,
    enqueue_diagram,
    queue_depth,
    retry_diagram_generation,
)
from ohm.models.diagrams import QUEUED

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/diagram", tags=["Diagrams"])

REQUIRED_FIELDS = ("circuitJson", "artifactId", "chatId")
ESTIMATED_TIME = "1-2 minutes"

_NO_STORE = {"Cache-Control": "no-store"}


async def _safe_json(req: Request) -> Any:
    """Best-effort JSON body parsing; None when the body is not JSON."""
    try:
        return await req.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.post("")
@router.post("/")
async def queue_diagram(request: Request):
    body = await _safe_json(request)
    if not isinstance(body, dict):
        body = {}

    missing = [k for k in REQUIRED_FIELDS if body.get(k) in (None, "")]
    if missing:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields", "required": list(REQUIRED_FIELDS), "missing": missing},
        )

    details = circuit_errors(body["circuitJson"])
    if details:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid circuit JSON format", "details": details},
        )

    artifact_id = str(body["artifactId"])
    chat_id = str(body["chatId"])
    logger.info("[DIAGRAM] queueing diagram for artifact %s", artifact_id)

    try:
        job = await enqueue_diagram(body["circuitJson"], artifact_id, chat_id)
    except ArtifactNotFound:
        raise HTTPException(status_code=404, detail=f"Artifact version {artifact_id} not found")

    return {
        "success": True,
        "jobId": job.id,
        "status": QUEUED,
        "message": f"Diagram generation queued. Will be ready within {ESTIMATED_TIME}.",
        "estimatedTime": ESTIMATED_TIME,
    }


@router.get("")
@router.get("/")
async def diagram_status(artifactId: Optional[str] = Query(None, description="artifact_versions.id to check")):
    if not artifactId:
        depth = await queue_depth()
        return JSONResponse(
            {"queue": depth, "estimatedWaitTime": f"{depth['total']} minutes"},
            headers=_NO_STORE,
        )

    version = await get_version(artifactId)
    if version is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return JSONResponse(
        {"status": version.diagram_status, "url": version.fritzing_url, "error": version.error_message},
        headers=_NO_STORE,
    )


@router.get("/stats")
async def diagram_stats() -> Dict[str, int]:
    return await get_diagram_stats()


@router.get("/cache/stats")
async def cache_stats(hours: int = Query(24, ge=1, description="Hit-rate window in hours")):
    stats = await get_cache_stats()
    for k in ("oldest_entry", "newest_entry"):
        if stats.get(k) is not None:
            stats[k] = stats[k].isoformat()
    stats["hit_rate"] = await get_cache_hit_rate(hours)
    return stats


@router.post("/cache/cleanup", dependencies=[Depends(verify_cron_secret)])
async def cache_cleanup(
    days_old: int = Query(30, ge=0),
    max_access_count: int = Query(2, ge=0),
):
    deleted = await cleanup_cache(days_old=days_old, max_access_count=max_access_count)
    return {"ok": True, "deleted": deleted}


@router.post("/{artifact_id}/retry")
async def retry_diagram(artifact_id: str):
    try:
        job = await retry_diagram_generation(artifact_id)
    except ArtifactNotFound:
        raise HTTPException(status_code=404, detail="Artifact not found")
    except NoCircuitJson as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "jobId": job.id, "status": QUEUED, "estimatedTime": ESTIMATED_TIME}
