import json
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

from helpdesk.app_logging import _install_access_logging


@pytest.fixture
def access_client(monkeypatch, caplog):
    monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
    app = FastAPI()

    @app.post("/api/conversations/{conversation_id}/messages")
    async def send(conversation_id: str, request: Request):
        await request.json()
        return StreamingResponse(
            iter(['event: done\ndata: {"message_id": "m1", "tokens_used": 3}\n\n']),
            media_type="text/event-stream",
        )

    @app.get("/api/agents")
    async def agents(request: Request):
        return {"request_id": request.state.request_id}

    @app.get("/api/health/ready")
    async def ready():
        return {"status": "ready"}

    _install_access_logging(app)
    caplog.set_level(logging.INFO, logger="uvicorn.access")
    with TestClient(app) as client:
        yield client


def _entries(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "uvicorn.access"]


def test_request_id_is_propagated_and_echoed(access_client, caplog):
    resp = access_client.get("/api/agents", headers={"X-Request-Id": "req-42"})

    assert resp.headers["X-Request-Id"] == "req-42"
    assert resp.json() == {"request_id": "req-42"}
    assert _entries(caplog)[0]["request_id"] == "req-42"


def test_request_id_is_generated_when_absent(access_client, caplog):
    resp = access_client.get("/api/agents")

    generated = resp.headers["X-Request-Id"]
    assert len(generated) == 32
    assert _entries(caplog)[0]["request_id"] == generated


def test_health_and_metrics_paths_are_not_logged(access_client, caplog):
    access_client.get("/api/health/ready")

    assert _entries(caplog) == []


def test_chat_turn_entry(access_client, caplog):
    resp = access_client.post(
        "/api/conversations/conv-1/messages",
        json={"content": "My card is 4111 1111 1111 1111", "api_key": "sk-live"},
        headers={"X-User-Id": "user-1", "X-Forwarded-For": "203.0.113.9"},
    )

    assert resp.status_code == 200
    (entry,) = _entries(caplog)
    assert entry["method"] == "POST"
    assert entry["status"] == 200
    assert entry["stream"] is True
    assert entry["user_id"] == "user-1"
    assert entry["conversation_id"] == "conv-1"
    assert entry["client_ip"] == "203.0.113.9"
    assert entry["body"] == {"content": "<30 chars>", "api_key": "***"}
