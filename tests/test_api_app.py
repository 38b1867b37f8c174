"""Tests for the FastAPI HTTP and WebSocket surface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from groundrag.api.app import AppDependencies, create_app
from groundrag.config import Settings
from groundrag.models import Document
from groundrag.retrieval.service import KnowledgeBase
from groundrag.services.actions import ActionExecutor
from groundrag.services.generation import TemplateComposer
from groundrag.services.guardrail import NO_SOURCES_TEXT
from groundrag.services.query import QueryService
from groundrag.session.engine import SessionConfig
from groundrag.session.state import SystemClock

DOCUMENTS = [
    Document(
        source="kb/prices.md",
        content=(
            "# Pricing\n"
            "Basic Plan: $9.99 per month, billed monthly, cancel at any time without extra fees or questions asked.\n"
            "Pro Plan: $49 per month with unlimited users, priority support and a dedicated account manager.\n"
        ),
    ),
]


def create_test_client(stream_delay_seconds: float = 0.0) -> TestClient:
    knowledge_base = KnowledgeBase(DOCUMENTS)
    deps = AppDependencies(
        knowledge_base=knowledge_base,
        query_service=QueryService(knowledge_base, TemplateComposer()),
        executor=ActionExecutor(),
        session_config=SessionConfig(stream_delay_seconds=stream_delay_seconds),
        clock=SystemClock(),
    )
    app = create_app(settings=Settings(environment="test"), dependencies=deps)
    return TestClient(app)


def _receive_until(ws, frame_type: str) -> list[dict]:
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["type"] == frame_type:
            return frames


def test_health_endpoints():
    client = create_test_client()
    assert client.get("/healthz").status_code == 200
    assert client.head("/healthz").status_code == 200
    assert client.get("/livez").json() == {"status": "alive"}
    ready = client.get("/healthz/ready").json()
    assert ready == {"status": "ready", "documents": 1}
    assert client.get("/metrics").status_code == 200


def test_query_endpoint_returns_grounded_answer():
    client = create_test_client()
    response = client.post("/query", json={"question": "How much is the basic plan?"})
    assert response.status_code == 200, response.text
    payload = response.json()
    assert "9.99" in payload["answer"]
    assert payload["citations"][0]["file"] == "kb/prices.md"
    assert response.headers["X-Correlation-ID"]


def test_query_endpoint_without_matches_returns_not_found_text():
    client = create_test_client()
    payload = client.post("/query", json={"question": "zebra xylophone"}).json()
    assert payload["answer"] == NO_SOURCES_TEXT
    assert payload["citations"] == []


def test_query_endpoint_validates_payload():
    client = create_test_client()
    assert client.post("/query", json={"question": ""}).status_code == 422


def test_websocket_message_and_action_flow():
    client = create_test_client()
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "message", "id": "m1", "text": "please call me about the basic plan"})
        frames = _receive_until(ws, "action_suggestion")

        types = [frame["type"] for frame in frames]
        assert types[-3:] == ["stream_end", "response", "action_suggestion"]
        assert all(kind == "stream" for kind in types[:-3])
        suggestion_id = frames[-1]["suggestionId"]

        ws.send_json({"type": "confirm_action", "suggestionId": suggestion_id})
        executed = ws.receive_json()
        assert executed["type"] == "action_executed"
        assert executed["result"]["success"] is True

        ws.send_json({"type": "confirm_action", "suggestionId": suggestion_id})
        assert ws.receive_json()["result"] == {"ignored": True}


def test_websocket_malformed_and_unknown_frames():
    client = create_test_client()
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}
        ws.send_json({"type": "confirm_action", "suggestionId": "action_nope"})
        assert ws.receive_json() == {"type": "error", "message": "Invalid action: action_nope"}


def test_websocket_cancel_mid_stream():
    client = create_test_client(stream_delay_seconds=0.05)
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "message", "id": "m1", "text": "basic plan"})
        deltas = [ws.receive_json()["delta"] for _ in range(3)]
        ws.send_json({"type": "cancel"})

        frames = _receive_until(ws, "response")
        deltas.extend(frame["delta"] for frame in frames if frame["type"] == "stream")
        assert frames[-2] == {"type": "stream_end", "reason": "cancelled"}
        assert frames[-1]["text"] == "".join(deltas).strip()
