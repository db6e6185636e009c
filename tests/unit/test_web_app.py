# tests/unit/test_web_app.py

from __future__ import annotations
import json
import sys
from pathlib import Path
import httpx
from fastapi.testclient import TestClient

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from unichat.core.context import ContextPolicy
from unichat.secrets.sources import SecretsResolver
from unichat.storage.kv import InMemoryKeyValueStore
from unichat.storage.model_store import ModelStore
from unichat.web.app import create_app


def _ctx(handler):
    return {
        "store": ModelStore(InMemoryKeyValueStore()),
        "secrets": SecretsResolver("env"),
        "client": httpx.Client(transport=httpx.MockTransport(handler)),
        "policy": None,
        "context": ContextPolicy(max_input_tokens=8000),
        "system_prompt": "sys",
    }


def _claude_events() -> bytes:
    events = [
        ("message_start", {"type": "message_start", "message": {"id": "msg_1"}}),
        ("content_block_delta", {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Bon"}}),
        ("content_block_delta", {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "jour"}}),
        ("message_stop", {"type": "message_stop"}),
    ]
    return "".join(f"event: {e}\ndata: {json.dumps(d)}\n\n" for e, d in events).encode()


def test_stream_endpoint_relays_ndjson(monkeypatch):
    monkeypatch.setenv("CLAUDE_API_KEY", "ak-env")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("x-api-key")
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=_claude_events())

    ctx = _ctx(handler)
    m = ctx["store"].add({"modelType": "claude", "apiUrl": "https://api.anthropic.com/v1/messages",
                          "modelName": "claude-3-opus-20240229"})
    ctx["store"].set_active(m.id)

    client = TestClient(create_app(Path("unused.yaml"), ctx=ctx))
    resp = client.post("/api/stream", json={"messages": [{"role": "user", "content": "Salut"}]})
    assert resp.status_code == 200
    assert resp.headers["x-model-id"] == m.id
    lines = [json.loads(line) for line in resp.text.splitlines() if line]
    assert "".join(d["content"] for d in lines) == "Bonjour"
    assert lines[-1]["done"] is True
    # the key came from the environment, not the stored record
    assert seen["key"] == "ak-env"


def test_stream_endpoint_config_errors_are_400():
    def handler(request):
        raise AssertionError("no upstream call expected")

    ctx = _ctx(handler)
    client = TestClient(create_app(Path("unused.yaml"), ctx=ctx))
    resp = client.post("/api/stream", json={"messages": [{"role": "user", "content": "x"}]})
    assert resp.status_code == 400
    assert "No active model" in resp.json()["detail"]

    m = ctx["store"].add({"modelType": "cohere", "apiUrl": "https://api.cohere.ai/v1/chat"})
    resp = client.post("/api/stream", json={"messages": [{"role": "user", "content": "x"}], "model_id": m.id})
    assert resp.status_code == 400
    assert "cohere" in resp.json()["detail"]

    assert client.post("/api/stream", json={"messages": []}).status_code == 422


def test_models_endpoints_mask_keys():
    ctx = _ctx(lambda request: httpx.Response(500))
    client = TestClient(create_app(Path("unused.yaml"), ctx=ctx))
    assert client.get("/api/models/active").status_code == 404

    m = ctx["store"].add({"modelType": "openai", "apiUrl": "https://api.openai.com/v1/chat/completions",
                          "apiKey": "sk-secret"})
    ctx["store"].set_active(m.id)
    listed = client.get("/api/models").json()
    assert listed[0]["apiKey"] == "***"
    active = client.get("/api/models/active").json()
    assert active["id"] == m.id and active["apiKey"] == "***"
