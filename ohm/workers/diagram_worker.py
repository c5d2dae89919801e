# ---------------------------
# ohm/workers/diagram_worker.py
# ---------------------------
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from ohm.config import settings
from ohm.diagrams.cache import cache_diagram, get_cached_diagram
from ohm.diagrams.circuit import hash_circuit
from ohm.diagrams.generator import generate_fritzing_diagram
from ohm.diagrams.queue_store import claim_job, complete_job, fail_job, fetch_queued

logger = logging.getLogger("uvicorn.error")

Generator = Callable[[Any, str, str], Awaitable[str]]

# one pass at a time per process; separate processes are kept apart by claim_job
_RUN_LOCK = asyncio.Lock()


async def process_diagram_queue(
    *,
    limit: Optional[int] = None,
    min_interval: Optional[float] = None,
    generator: Optional[Generator] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """
    Drain up to `limit` queued diagram jobs, oldest first, one at a time.

    Each job: claim → cache lookup → (hit: reuse URL | miss: generate + cache)
    → artifact/queue row marked complete. Any error marks that job (and its
    artifact version) failed and the batch carries on.

    Consecutive jobs are spaced at least `min_interval` seconds apart so the
    image API never sees more than one request per interval.
    """
    limit = settings.DIAGRAM_BATCH_LIMIT if limit is None else limit
    min_interval = settings.DIAGRAM_MIN_INTERVAL if min_interval is None else min_interval
    # resolved per call so tests can monkeypatch the module attribute
    generate = generator or generate_fritzing_diagram

    async with _RUN_LOCK:
        started = clock()
        pending = await fetch_queued(limit)

        if not pending:
            logger.info("[CRON] queue is empty")
            return {
                "success": True,
                "message": "Queue empty",
                "processed": 0,
                "cached": 0,
                "failed": 0,
                "skipped": 0,
                "total": 0,
                "duration": _ms(clock() - started),
            }

        logger.info("[CRON] found %d pending diagrams", len(pending))
        processed = cached = failed = skipped = 0

        for i, job in enumerate(pending):
            job_started = clock()

            if not await claim_job(job.id):
                logger.info("[CRON] job %s already claimed by another run; skipping", job.id)
                skipped += 1
                continue

            try:
                logger.info("[CRON] processing job %s (%d/%d)", job.id, i + 1, len(pending))
                circuit_hash = hash_circuit(job.circuit_json)
                url = await get_cached_diagram(circuit_hash)

                if url:
                    logger.info("[CRON] using cached diagram for job %s", job.id)
                    cached += 1
                else:
                    logger.info("[CRON] generating new diagram for job %s", job.id)
                    url = await generate(job.circuit_json, job.artifact_id, job.chat_id)
                    await cache_diagram(circuit_hash, url)

                await complete_job(job, url)
                processed += 1
                logger.info("[CRON] job %s completed in %dms", job.id, _ms(clock() - job_started))
            except Exception as e:
                failed += 1
                message = str(e) or e.__class__.__name__
                logger.exception("[CRON] job %s failed: %s", job.id, message)
                try:
                    await fail_job(job, message)
                except Exception as mark_err:
                    logger.error("[CRON] failed to mark job %s as failed: %s", job.id, mark_err)

            if i < len(pending) - 1:
                wait = max(0.0, min_interval - (clock() - job_started))
                if wait > 0:
                    logger.debug("[CRON] waiting %dms before next request", _ms(wait))
                    await sleep(wait)

        duration = _ms(clock() - started)
        logger.info(
            "[CRON] completed: %d processed, %d from cache, %d failed, %d skipped in %dms",
            processed, cached, failed, skipped, duration,
        )
        return {
            "success": True,
            "processed": processed,
            "cached": cached,
            "failed": failed,
            "skipped": skipped,
            "total": len(pending),
            "duration": duration,
        }


def _ms(seconds: float) -> int:
    return int(round(seconds * 1000))


async def worker_loop(stop_event: asyncio.Event, interval: Optional[float] = None) -> None:
    """In-process stand-in for the once-a-minute cron."""
    interval = settings.DIAGRAM_WORKER_INTERVAL if interval is None else interval
    logger.info("[WORKER] started (interval=%ss)", interval)
    while not stop_event.is_set():
        try:
            await process_diagram_queue()
        except Exception as e:
            logger.error("[WORKER] queue pass failed: %s", e)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
    logger.info("[WORKER] stopped")
