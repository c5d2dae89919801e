# ohm/chats/chat_store.py
# Chats and their multi-agent session row, kept in the database so any
# worker/instance sees the same state (no per-process session map).
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select

from ohm.db import get_sessionmaker
from ohm.models.chats import Chat, ChatSession

logger = logging.getLogger("uvicorn.error")

# placeholder id the UI sends for signed-out users
ANONYMOUS_USER_ID = "00000000-0000-0000-0000-000000000000"

SESSION_FIELDS = (
    "current_agent",
    "agent_context",
    "is_plan_locked",
    "locked_blueprint",
    "budget_range",
    "budget_target",
)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def chat_to_dict(c: Chat) -> Dict[str, Any]:
    return {
        "id": c.id,
        "user_id": c.user_id,
        "title": c.title,
        "is_archived": c.is_archived,
        "last_message_at": _iso(c.last_message_at),
        "created_at": _iso(c.created_at),
    }


def session_to_dict(s: ChatSession) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": s.id, "chat_id": s.chat_id}
    for f in SESSION_FIELDS:
        out[f] = getattr(s, f)
    out["last_active_at"] = _iso(s.last_active_at)
    out["created_at"] = _iso(s.created_at)
    return out


async def create_chat(user_id: Optional[str], title: str = "New Hardware Project",
                      chat_id: Optional[str] = None) -> Chat:
    """Create a chat and its companion session."""
    if user_id == ANONYMOUS_USER_ID:
        user_id = None
    async with get_sessionmaker()() as session:
        chat = Chat(user_id=user_id, title=title)
        if chat_id:
            chat.id = chat_id
        session.add(chat)
        await session.flush()
        session.add(ChatSession(chat_id=chat.id, last_active_at=datetime.utcnow()))
        await session.commit()
    logger.info("[CHAT] created chat %s", chat.id)
    return chat


async def get_chat(chat_id: str) -> Optional[Chat]:
    async with get_sessionmaker()() as session:
        return await session.get(Chat, chat_id)


async def get_session(chat_id: str) -> Optional[ChatSession]:
    async with get_sessionmaker()() as session:
        return (await session.execute(
            select(ChatSession).where(ChatSession.chat_id == chat_id)
        )).scalar_one_or_none()


async def update_session(chat_id: str, updates: Dict[str, Any]) -> Optional[ChatSession]:
    """Apply known session fields; unknown keys are ignored. None if the chat has no session."""
    async with get_sessionmaker()() as session:
        row = (await session.execute(
            select(ChatSession).where(ChatSession.chat_id == chat_id)
        )).scalar_one_or_none()
        if row is None:
            return None
        for k, v in updates.items():
            if k in SESSION_FIELDS:
                setattr(row, k, v)
        row.last_active_at = datetime.utcnow()
        await session.commit()
    return row
