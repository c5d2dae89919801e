from __future__ import annotations

import os
import pathlib
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from ohm.config import settings

logger = logging.getLogger("uvicorn.error")

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    pass


def _resolve_dsn() -> str:
    """
    Prefer env var DATABASE_URL (read at call time), then settings.DATABASE_URL,
    else default to a local SQLite database under ./data/.
    """
    dsn = (
        os.getenv("DATABASE_URL")
        or getattr(settings, "DATABASE_URL", None)
        or "sqlite+aiosqlite:///./data/ohm.db"
    )

    # If using SQLite, make sure the folder exists so SQLAlchemy can create the file.
    if dsn.startswith("sqlite"):
        try:
            # Handle sqlite+aiosqlite:///./data/ohm.db
            # or sqlite+aiosqlite:////code/data/ohm.db
            sep = "///" if "///" in dsn else "//"
            path_part = dsn.split(sep, 1)[1] if sep in dsn else ""
            if path_part and path_part != ":memory:":
                path = pathlib.Path(path_part).resolve()
                path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("[DB] Could not ensure SQLite directory exists: %s", e)

    return dsn


def get_engine() -> AsyncEngine:
    """
    Lazily create a global AsyncEngine and sessionmaker.
    """
    global _engine, _sessionmaker
    if _engine is None:
        dsn = _resolve_dsn()
        kwargs = {}
        if dsn.startswith("sqlite"):
            # aiosqlite connections are bound to the loop that opened them;
            # cron runs, the worker and the test client may each bring their own.
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_pre_ping"] = True
        _engine = create_async_engine(dsn, echo=False, **kwargs)
        _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
        logger.info("[DB] engine initialized for %s", dsn.split("@")[-1])
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Get the global async session factory.
    """
    global _sessionmaker
    if _sessionmaker is None:
        get_engine()
    # _sessionmaker will be set by get_engine()
    return _sessionmaker  # type: ignore[return-value]


async def init_db() -> None:
    """
    Ensure the engine is created and all ORM tables exist.
    """
    # register tables on Base.metadata
    from ohm.models import diagrams, artifacts, chats  # noqa: F401

    eng = get_engine()
    try:
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error("[DB] initial connect failed: %s", e)
        raise


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine (next use re-reads DATABASE_URL)."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None
