# ohm/models/chats.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any
from sqlalchemy import String, DateTime, Boolean, Float, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from ohm.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Chat(Base):
    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), default="New Hardware Project")
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class ChatSession(Base):
    """Multi-agent state for a chat (one row per chat)."""
    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    chat_id: Mapped[str] = mapped_column(String(64), ForeignKey("chats.id"), unique=True, index=True)
    current_agent: Mapped[str | None] = mapped_column(String(64), nullable=True)
    agent_context: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    is_plan_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked_blueprint: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    budget_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    budget_target: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_active_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
