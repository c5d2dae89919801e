# ohm/models/diagrams.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any
from sqlalchemy import String, Integer, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from ohm.db import Base

QUEUED = "queued"
PROCESSING = "processing"
COMPLETE = "complete"
FAILED = "failed"


def _uuid() -> str:
    return str(uuid.uuid4())


class DiagramJob(Base):
    __tablename__ = "diagram_queue"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    circuit_json: Mapped[Any] = mapped_column(JSON)
    artifact_id: Mapped[str] = mapped_column(String(36), index=True)   # artifact_versions.id
    chat_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(32), default=QUEUED, index=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class DiagramCacheEntry(Base):
    __tablename__ = "diagram_cache"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    circuit_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    fritzing_url: Mapped[str] = mapped_column(Text)
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
