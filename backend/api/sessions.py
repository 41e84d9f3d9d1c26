from typing import Optional, Any, Dict, List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from models.db import (
    get_chat_session,
    get_chat_messages,
    get_recent_chat_sessions,
    delete_chat_session,
)
from models.schemas import ChatSession, ChatMessage, UserSession
from .common import current_user


router = APIRouter()


def _load_owned_session(session_id: str, user: Optional[UserSession]):
    """Session row plus an error response when the caller may not see it.

    Anonymous sessions are reachable by anyone holding the session id.
    """
    session = get_chat_session(session_id)
    if not session:
        return None, JSONResponse(status_code=404, content={"error": "Session not found"})
    owner = session["user_id"]
    if owner is not None and (user is None or user.id != owner):
        return None, JSONResponse(status_code=403, content={"error": "Not authorized to view this session"})
    return session, None


@router.get("/chat-sessions")
def get_chat_sessions(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Optional[UserSession] = Depends(current_user),
):
    if user is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    sessions = get_recent_chat_sessions(limit=limit + offset, user_id=user.id)
    sliced = sessions[offset : offset + limit]
    return {
        "sessions": [ChatSession.from_row(row).model_dump() for row in sliced],
        "total_fetched": len(sessions),
        "offset": offset,
        "limit": limit,
    }


@router.get("/chat-sessions/{session_id}")
def get_chat_session_detail(
    session_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: Optional[UserSession] = Depends(current_user),
):
    session, error = _load_owned_session(session_id, user)
    if error is not None:
        return error
    all_messages = get_chat_messages(session_id)
    if limit is None:
        paged = all_messages
    else:
        paged = all_messages[offset : offset + limit]
    out_messages: List[Dict[str, Any]] = [ChatMessage.from_row(row).model_dump() for row in paged]
    return {
        "session": ChatSession.from_row(session).model_dump(),
        "messages": out_messages,
        "total_messages": len(all_messages),
        "offset": offset,
        "limit": limit if limit is not None else len(all_messages),
    }


@router.delete("/chat-sessions/{session_id}")
def delete_session(session_id: str, user: Optional[UserSession] = Depends(current_user)):
    _session, error = _load_owned_session(session_id, user)
    if error is not None:
        return error
    delete_chat_session(session_id)
    return {"ok": True}
