# ohm/chats/chat_api.py
from __future__ import annotations
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from ohm.chats.chat_store import (
    chat_to_dict,
    create_chat,
    get_chat,
    get_session,
    session_to_dict,
    update_session,
)

router = APIRouter(prefix="/api/chats", tags=["Chats"])


class ChatCreate(BaseModel):
    user_id: Optional[str] = None
    title: str = "New Hardware Project"
    id: Optional[str] = None   # client-chosen id for instant navigation


class SessionUpdate(BaseModel):
    current_agent: Optional[str] = None
    agent_context: Optional[Any] = None
    is_plan_locked: Optional[bool] = None
    locked_blueprint: Optional[Any] = None
    budget_range: Optional[str] = None
    budget_target: Optional[float] = None


@router.post("")
@router.post("/")
async def api_create_chat(payload: ChatCreate = Body(...)):
    try:
        chat = await create_chat(payload.user_id, payload.title, chat_id=payload.id)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Chat {payload.id} already exists")
    return {"ok": True, "chat": chat_to_dict(chat)}


@router.get("/{chat_id}")
async def api_get_chat(chat_id: str):
    chat = await get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat_to_dict(chat)


@router.get("/{chat_id}/session")
async def api_get_session(chat_id: str):
    s = await get_session(chat_id)
    if s is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session_to_dict(s)


@router.patch("/{chat_id}/session")
async def api_update_session(chat_id: str, payload: SessionUpdate = Body(...)):
    s = await update_session(chat_id, payload.model_dump(exclude_unset=True))
    if s is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return {"ok": True, "session": session_to_dict(s)}
