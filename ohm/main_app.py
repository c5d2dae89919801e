#=================================================================
# ohm/main_app.py
# FastAPI application entry-point for the Ohm diagram backend.
#=================================================================

import logging, asyncio

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ohm import logging_filters
from ohm.diagrams.diagram_api import router as diagram_router
from ohm.diagrams.cron_api import router as cron_router
from ohm.artifacts.artifact_api import router as artifact_router
from ohm.chats.chat_api import router as chat_router
from ohm.diagrams.storage import storage_root
from ohm.workers.diagram_worker import worker_loop
from ohm.db import init_db, dispose_engine
from ohm.config import settings

# --- FastAPI instance ---
app = FastAPI(
    title="Ohm Diagram Service",
    description="Circuit diagram queue, cache and generation for Ohm hardware projects.",
)

# --- Logging setup (console, INFO level) ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s"
)
logger = logging.getLogger("uvicorn.error")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging_filters.install()

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------- Include routers ----------------

app.include_router(cron_router)       # /api/cron/* (Bearer CRON_SECRET)
app.include_router(diagram_router)    # /api/diagram/*
app.include_router(artifact_router)   # /api/artifacts/*, /api/artifact-versions/*
app.include_router(chat_router)       # /api/chats/*

# Stored diagrams, when they are served by this app (relative public base URL)
if settings.DIAGRAM_PUBLIC_BASE_URL.startswith("/"):
    app.mount(
        settings.DIAGRAM_PUBLIC_BASE_URL,
        StaticFiles(directory=str(storage_root()), check_dir=False),
        name="circuit-diagrams",
    )

# --- Root endpoint ---
@app.get("/")
async def home():
    return {"status": "running", "service": "Ohm Diagram Service"}

# --- Global error handler (keeps full stack trace in logs) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Unknown error"},
    )

# ---- Background worker lifecycle ----
_worker_task: asyncio.Task | None = None
_worker_stop: asyncio.Event | None = None

@app.on_event("startup")
async def _startup():
    await init_db()
    if not settings.DIAGRAM_WORKER_ENABLED:
        return
    global _worker_task, _worker_stop
    _worker_stop = asyncio.Event()
    _worker_task = asyncio.create_task(worker_loop(_worker_stop))

@app.on_event("shutdown")
async def _shutdown():
    global _worker_task, _worker_stop
    if _worker_stop:
        _worker_stop.set()
    if _worker_task:
        try:
            await asyncio.wait_for(_worker_task, timeout=5.0)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            _worker_task.cancel()
    _worker_task = None
    _worker_stop = None
    await dispose_engine()
