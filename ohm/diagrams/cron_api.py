# ohm/diagrams/cron_api.py
# Cron entry point: drain the diagram queue. Schedule: * * * * * (every minute)
import logging
import secrets
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ohm.config import settings
from ohm.workers import diagram_worker

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/cron", tags=["Cron"])

bearer = HTTPBearer(auto_error=False)


def verify_cron_secret(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> None:
    expected = settings.CRON_SECRET or ""
    received = credentials.credentials if credentials else ""
    # no configured secret means nobody gets in
    if not expected or not secrets.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
        logger.error("[CRON] unauthorized access attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.get("/process-diagrams", dependencies=[Depends(verify_cron_secret)])
@router.post("/process-diagrams", dependencies=[Depends(verify_cron_secret)])
async def process_diagrams():
    started = time.monotonic()
    logger.info("[CRON] starting diagram queue processing")
    try:
        result = await diagram_worker.process_diagram_queue()
    except Exception as e:
        logger.exception("[CRON] fatal error")
        return JSONResponse(
            status_code=500,
            content={"error": str(e) or "Unknown error", "duration": int((time.monotonic() - started) * 1000)},
            headers={"Cache-Control": "no-store"},
        )
    return JSONResponse(result, headers={"Cache-Control": "no-store"})
