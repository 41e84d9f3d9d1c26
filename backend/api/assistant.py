from typing import Any, Dict, List, Optional
import json
import logging
import time
import uuid

from fastapi import APIRouter, Body, Depends, Form
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from llm import check_llm_status
from models.db import add_chat_message, create_chat_session, get_chat_messages, get_chat_session, update_chat_session_title
from models.schemas import UserSession
from prompts import build_event_assistant_system_prompt
from tools import call_tool, get_component_schemas, get_tool_schemas, validate_component_props
from tools.components import COMPONENTS
from utils.text import title_from_message
from .common import current_user, get_generate_stream


logger = logging.getLogger(__name__)

router = APIRouter()

HISTORY_LIMIT = 20
HEARTBEAT_SECONDS = 15


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


@router.get("/assistant/tools")
def list_tools():
    return {"tools": get_tool_schemas()}


@router.get("/assistant/components")
def list_components():
    return {"components": get_component_schemas()}


@router.post("/assistant/components/{component_name}")
def check_component_props(component_name: str, props: Optional[Dict[str, Any]] = Body(default=None)):
    """Validate assistant-chosen props before the client renders the component."""
    if component_name not in COMPONENTS:
        return JSONResponse(status_code=404, content={"error": f"Unknown component: {component_name}"})
    try:
        normalized = validate_component_props(component_name, props or {})
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": f"Invalid props for {component_name}: {e.errors(include_url=False)}"},
        )
    return {"name": component_name, "props": normalized}


@router.post("/assistant/tools/{function_name}")
def invoke_tool(
    function_name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    user: Optional[UserSession] = Depends(current_user),
):
    result = call_tool(function_name, arguments, user=user)
    if isinstance(result, dict) and result.get("ok") is False:
        status = result.get("status") or (404 if result["error"].startswith("Unknown function") else 400)
        return JSONResponse(status_code=status, content=result)
    return {"ok": True, "result": result}


@router.get("/assistant/status")
async def assistant_status():
    return await check_llm_status()


@router.post("/assistant/chat-stream")
async def chat_stream(
    user_input: str = Form(...),
    session_id: Optional[str] = Form(None),
    user: Optional[UserSession] = Depends(current_user),
):
    if not session_id:
        session_id = str(uuid.uuid4())

    existing = get_chat_session(session_id)
    if existing is not None and existing["user_id"] is not None and (user is None or existing["user_id"] != user.id):
        return JSONResponse(status_code=403, content={"error": "Not authorized to use this chat session"})
    if existing is None:
        create_chat_session(session_id, user.id if user else None, title_from_message(user_input))
    elif not existing["title"]:
        update_chat_session_title(session_id, title_from_message(user_input))

    add_chat_message(session_id, "user", user_input)

    system_prompt = build_event_assistant_system_prompt(user, COMPONENTS.keys())
    chat_history = get_chat_messages(session_id, limit=HISTORY_LIMIT)
    tools = get_tool_schemas()
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for msg_row in chat_history[:-1]:
        if msg_row["role"] in ("user", "assistant"):
            messages.append({"role": msg_row["role"], "content": msg_row["content"]})
    messages.append({"role": "user", "content": user_input})

    async def token_generator():
        yield _sse({"type": "session_info", "session_id": session_id})

        assistant_response_parts: List[str] = []
        tool_calls_logged: List[Dict[str, Any]] = []

        last_heartbeat = time.time()
        generate_stream = get_generate_stream()
        try:
            async for data in generate_stream(
                user_input,
                system=system_prompt,
                tools=tools,
                execute_tool=lambda fn, args: call_tool(fn, args, user=user),
                seed_messages=messages,
            ):
                if isinstance(data, dict):
                    if data.get("type") == "thinking":
                        yield _sse({"type": "thinking", "content": data.get("content")})
                    elif data.get("type") == "tool_calls":
                        calls = data.get("tool_calls", []) or []
                        yield _sse({"type": "tool_calls", "tool_calls": calls})
                        for tc in calls:
                            if tc.get("id") is None or all(existing.get("id") != tc.get("id") for existing in tool_calls_logged):
                                tool_calls_logged.append(tc)
                    elif data.get("type") == "content" and data.get("content"):
                        assistant_response_parts.append(data["content"])
                        yield _sse({"type": "token", "token": data["content"]})
                elif isinstance(data, str) and data:
                    assistant_response_parts.append(data)
                    yield _sse({"type": "token", "token": data})

                if time.time() - last_heartbeat > HEARTBEAT_SECONDS:
                    yield ": ping\n\n"
                    last_heartbeat = time.time()
        except Exception:
            logger.exception(f"Assistant stream failed for session {session_id}")
            yield _sse({"type": "error", "error": "The assistant is unavailable right now"})

        if assistant_response_parts:
            metadata = {"tool_calls": tool_calls_logged} if tool_calls_logged else None
            add_chat_message(session_id, "assistant", "".join(assistant_response_parts), metadata)

        yield _sse({"type": "end"})

    return StreamingResponse(token_generator(), media_type="text/event-stream")
