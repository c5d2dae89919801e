# ohm/diagrams/cache.py
# Rendered-diagram cache keyed by circuit hash (see circuit.hash_circuit).
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ohm.db import get_sessionmaker
from ohm.models.diagrams import COMPLETE, DiagramCacheEntry, DiagramJob

logger = logging.getLogger("uvicorn.error")


async def get_cached_diagram(circuit_hash: str) -> Optional[str]:
    """
    URL of a previous render for this hash, or None.
    A hit bumps access_count/last_accessed_at. DB errors count as a miss.
    """
    try:
        async with get_sessionmaker()() as session:
            entry = (await session.execute(
                select(DiagramCacheEntry).where(DiagramCacheEntry.circuit_hash == circuit_hash)
            )).scalar_one_or_none()
            if entry is None:
                return None

            logger.info("[CACHE] hit for circuit hash %s", circuit_hash)
            entry.access_count = (entry.access_count or 0) + 1
            entry.last_accessed_at = datetime.utcnow()
            url = entry.fritzing_url
            try:
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("[CACHE] failed to update access stats: %s", e)
            return url
    except SQLAlchemyError as e:
        logger.error("[CACHE] error checking cache: %s", e)
        return None


async def cache_diagram(circuit_hash: str, fritzing_url: str) -> None:
    """Upsert on circuit_hash. Best-effort: failures are logged, never raised."""
    try:
        async with get_sessionmaker()() as session:
            entry = (await session.execute(
                select(DiagramCacheEntry).where(DiagramCacheEntry.circuit_hash == circuit_hash)
            )).scalar_one_or_none()
            now = datetime.utcnow()
            if entry is None:
                session.add(DiagramCacheEntry(
                    circuit_hash=circuit_hash,
                    fritzing_url=fritzing_url,
                    access_count=1,
                    last_accessed_at=now,
                ))
            else:
                entry.fritzing_url = fritzing_url
                entry.access_count = 1
                entry.last_accessed_at = now
            await session.commit()
        logger.info("[CACHE] cached diagram for hash %s", circuit_hash)
    except IntegrityError:
        # another writer inserted the same hash first; theirs is as good as ours
        logger.info("[CACHE] hash %s already cached by a concurrent writer", circuit_hash)
    except SQLAlchemyError as e:
        logger.error("[CACHE] failed to cache diagram: %s", e)


async def get_cache_stats() -> Dict[str, Any]:
    empty = {
        "total_entries": 0,
        "total_hits": 0,
        "average_hits_per_entry": 0.0,
        "oldest_entry": None,
        "newest_entry": None,
    }
    try:
        async with get_sessionmaker()() as session:
            row = (await session.execute(
                select(
                    func.count(DiagramCacheEntry.id),
                    func.coalesce(func.sum(DiagramCacheEntry.access_count), 0),
                    func.min(DiagramCacheEntry.created_at),
                    func.max(DiagramCacheEntry.created_at),
                )
            )).one()
    except SQLAlchemyError as e:
        logger.error("[CACHE] error getting stats: %s", e)
        return empty

    total, hits, oldest, newest = row
    if not total:
        return empty
    return {
        "total_entries": int(total),
        "total_hits": int(hits or 0),
        "average_hits_per_entry": float(hits or 0) / int(total),
        "oldest_entry": oldest,
        "newest_entry": newest,
    }


async def cleanup_cache(days_old: int = 30, max_access_count: int = 2) -> int:
    """Delete entries not accessed in `days_old` days with at most `max_access_count` hits."""
    cutoff = datetime.utcnow() - timedelta(days=days_old)
    try:
        async with get_sessionmaker()() as session:
            res = await session.execute(
                delete(DiagramCacheEntry)
                .where(DiagramCacheEntry.last_accessed_at < cutoff)
                .where(DiagramCacheEntry.access_count <= max_access_count)
            )
            await session.commit()
    except SQLAlchemyError as e:
        logger.error("[CACHE] cleanup error: %s", e)
        return 0
    deleted = int(res.rowcount or 0)
    logger.info("[CACHE] cleaned up %d old entries", deleted)
    return deleted


async def get_cache_hit_rate(timeframe_hours: int = 24) -> float:
    """
    Percentage of diagram requests in the window served from cache:
    hits / (completed jobs + hits) * 100.
    """
    cutoff = datetime.utcnow() - timedelta(hours=timeframe_hours)
    try:
        async with get_sessionmaker()() as session:
            generations = (await session.execute(
                select(func.count(DiagramJob.id))
                .where(DiagramJob.created_at >= cutoff)
                .where(DiagramJob.status == COMPLETE)
            )).scalar_one()
            if not generations:
                return 0.0
            hits = (await session.execute(
                select(func.coalesce(func.sum(DiagramCacheEntry.access_count), 0))
                .where(DiagramCacheEntry.last_accessed_at >= cutoff)
            )).scalar_one()
    except SQLAlchemyError as e:
        logger.error("[CACHE] error calculating hit rate: %s", e)
        return 0.0
    hits = int(hits or 0)
    return hits / (int(generations) + hits) * 100.0
