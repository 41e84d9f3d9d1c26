from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from models.db import set_db_path, init_db, get_chat_messages, get_chat_session, create_chat_session, create_user


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    """Provide a TestClient with temporary DB and patched model discovery to avoid network calls."""
    set_db_path(tmp_path / "assistant.db")
    init_db()

    import llm

    async def fake_initialize_models():
        llm.AVAILABLE_MODELS[:] = ["local-test-model"]

    monkeypatch.setattr(llm, "initialize_models", fake_initialize_models)

    import main  # after monkeypatch
    return TestClient(main.app)


def _read_events(response) -> list[dict]:
    events = []
    for raw_line in response.iter_lines():
        if not raw_line:
            continue
        line = raw_line.decode("utf-8", "ignore") if isinstance(raw_line, (bytes, bytearray)) else raw_line
        if not line.startswith("data: "):
            continue
        payload = json.loads(line[6:])
        events.append(payload)
        if payload.get("type") == "end":
            break
    return events


def test_chat_stream_runs_tools_as_current_user(client: TestClient, monkeypatch):
    import router as router_module

    r = client.post(
        "/api/auth/register",
        json={"email": "ada@example.com", "password": "pw", "name": "Ada", "role": "ATTENDEE"},
    )
    assert r.status_code == 200

    seen = {}

    async def fake_stream(prompt: str, **kwargs):
        seen["system"] = kwargs["system"]
        seen["tools"] = [t["function"]["name"] for t in kwargs["tools"]]
        yield {"type": "thinking", "content": "Look up the user"}
        yield {"type": "tool_calls", "tool_calls": [{"id": "call_1", "name": "getCurrentUser", "arguments": "{}"}]}
        result = kwargs["execute_tool"]("getCurrentUser", {})
        yield {"type": "content", "content": f"Hello {result['name']}"}

    monkeypatch.setattr(router_module, "generate_stream", fake_stream)

    with client.stream("POST", "/api/assistant/chat-stream", data={"user_input": "Who am I?"}) as resp:
        assert resp.status_code == 200
        events = _read_events(resp)

    types = [e["type"] for e in events]
    assert types[0] == "session_info" and types[-1] == "end"
    assert types.index("tool_calls") < types.index("token")
    tokens = "".join(e["token"] for e in events if e["type"] == "token")
    assert tokens == "Hello Ada"
    assert "Ada" in seen["system"] and "getCurrentUser" in seen["tools"]

    session_id = events[0]["session_id"]
    stored = get_chat_messages(session_id)
    assert [m["role"] for m in stored] == ["user", "assistant"]
    assert stored[1]["content"] == "Hello Ada"
    assert json.loads(stored[1]["metadata"])["tool_calls"][0]["name"] == "getCurrentUser"
    assert get_chat_session(session_id)["title"] == "Who am I"

    sessions = client.get("/api/chat-sessions").json()["sessions"]
    assert [s["session_id"] for s in sessions] == [session_id]
    detail = client.get(f"/api/chat-sessions/{session_id}").json()
    assert detail["total_messages"] == 2


def test_stream_failure_reports_error_and_ends(client: TestClient, monkeypatch):
    import router as router_module

    async def broken_stream(prompt: str, **kwargs):
        yield {"type": "content", "content": "partial"}
        raise RuntimeError("runtime offline")

    monkeypatch.setattr(router_module, "generate_stream", broken_stream)

    with client.stream("POST", "/api/assistant/chat-stream", data={"user_input": "Hi", "session_id": "s-1"}) as resp:
        events = _read_events(resp)

    assert [e["type"] for e in events] == ["session_info", "token", "error", "end"]
    assert [m["content"] for m in get_chat_messages("s-1")] == ["Hi", "partial"]


def test_sessions_are_private_to_their_owner(client: TestClient):
    owner = create_user("owner@example.com", "hash", "Owner", "ATTENDEE")
    create_chat_session("owned", user_id=owner, title="Mine")
    assert client.get("/api/chat-sessions").status_code == 401
    assert client.get("/api/chat-sessions/owned").status_code == 403
    assert client.delete("/api/chat-sessions/owned").status_code == 403
    assert client.get("/api/chat-sessions/missing").status_code == 404
    assert client.post("/api/assistant/chat-stream", data={"user_input": "Hi", "session_id": "owned"}).status_code == 403


def test_assistant_status_reports_unreachable_runtime(client: TestClient, monkeypatch):
    import llm

    class FailingModels:
        async def list(self):
            raise ConnectionError("refused")

    class FakeClient:
        models = FailingModels()

    monkeypatch.setattr(llm, "client", FakeClient())
    status = client.get("/api/assistant/status").json()
    assert status["connected"] is False and "refused" in status["error"]
