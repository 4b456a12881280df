import json
import queue
import threading

import pytest
from fastapi.testclient import TestClient

from chat_service.config import settings
from chat_service.main import app
from chat_service.errors import CompletionCancelledError, ProviderStreamError
from chat_service.routers.chat import get_chat_store, get_llm_client, get_stream_service, ndjson_lines, start_stream
from chat_service.services.completion_service import ChatCompletionService
from chat_service.services.stream_completion_service import ChatCompletionStreamService

from conftest import FakeProvider, SpyStore, make_input


@pytest.fixture(autouse=True)
def server_configuration(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_MODEL", "m")
    monkeypatch.setattr(settings, "MODEL_MAX_TOKENS", 4096)
    monkeypatch.setattr(settings, "MAX_TOKENS", 50)
    monkeypatch.setattr(settings, "TEMPERATURE", 0.1)
    monkeypatch.setattr(settings, "TOP_P", 1.0)
    monkeypatch.setattr(settings, "N", 1)
    monkeypatch.setattr(settings, "STOP", [])
    monkeypatch.setattr(settings, "PRESENCE_PENALTY", 0.0)
    monkeypatch.setattr(settings, "FREQUENCY_PENALTY", 0.0)
    monkeypatch.setattr(settings, "INITIAL_SYSTEM_MESSAGE", "You are helpful.")
    monkeypatch.setattr(settings, "AUTH_TOKEN", "")


@pytest.fixture
def wire():
    """Point the app at a fresh store and the given provider."""
    store = SpyStore()

    def _wire(provider=None):
        provider = provider or FakeProvider()
        app.dependency_overrides[get_chat_store] = lambda: store
        app.dependency_overrides[get_llm_client] = lambda: provider
        return store, provider

    yield _wire
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    # No context manager: startup migrations are not run
    return TestClient(app)


def ndjson(response):
    return [json.loads(line) for line in response.text.splitlines() if line]


def test_health(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_chat_creates_and_continues(client, wire):
    store, provider = wire()

    res = client.post("/chat", json={"user_id": "u1", "message": "hello"})
    assert res.status_code == 200
    body = res.json()
    assert body["content"] == "Hi there!"
    assert body["user_id"] == "u1"

    res = client.post("/chat", json={"chat_id": body["chat_id"], "user_id": "u1", "message": "more"})
    assert res.status_code == 200
    assert res.json()["chat_id"] == body["chat_id"]

    chat = store.find_by_id(body["chat_id"])
    assert chat.configuration.model.name == "m"
    assert chat.configuration.max_tokens == 50
    assert chat.count_messages() == 5


def test_chat_requires_message(client, wire):
    wire()
    res = client.post("/chat", json={"user_id": "u1", "message": ""})
    assert res.status_code == 422


def test_provider_failure_maps_to_bad_gateway(client, wire):
    wire(FakeProvider(error=TimeoutError("slow")))
    res = client.post("/chat", json={"user_id": "u1", "message": "hello"})

    assert res.status_code == 502
    detail = res.json()["detail"]
    assert detail["error_code"] == "provider_error"
    assert detail["details"] == {"cause": "slow"}


def test_lookup_failure_maps_to_server_error(client, wire):
    store, _ = wire()
    store.find_error = RuntimeError("db down")
    res = client.post("/chat", json={"chat_id": "c-1", "user_id": "u1", "message": "hello"})

    assert res.status_code == 500
    assert res.json()["detail"]["error_code"] == "session_lookup_failed"


def test_auth_token_is_enforced(client, wire, monkeypatch):
    wire()
    monkeypatch.setattr(settings, "AUTH_TOKEN", "secret")
    payload = {"user_id": "u1", "message": "hello"}

    assert client.post("/chat", json=payload).status_code == 401
    assert client.post("/chat", json=payload, headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.post("/chat", json=payload, headers={"Authorization": "Bearer secret"}).status_code == 200


def test_stream_returns_cumulative_lines(client, wire):
    store, _ = wire(FakeProvider(deltas=["Hel", "lo", "!"]))

    res = client.post("/chat/stream", json={"user_id": "u1", "message": "hello"})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/x-ndjson")

    lines = ndjson(res)
    assert [line["content"] for line in lines] == ["Hel", "Hello", "Hello!"]
    chat = store.find_by_id(lines[0]["chat_id"])
    assert chat.messages[-1].content == "Hello!"


def test_stream_error_before_first_delta_maps_to_status(client, wire):
    store, _ = wire(FakeProvider(deltas=["x"], fail_after=0))

    res = client.post("/chat/stream", json={"user_id": "u1", "message": "hello"})
    assert res.status_code == 502
    assert res.json()["detail"]["error_code"] == "provider_stream_error"
    assert "save" not in store.calls


def test_stream_error_after_first_delta_ends_with_error_line(client, wire):
    store, _ = wire(FakeProvider(deltas=["x", "y"], fail_after=1))

    res = client.post("/chat/stream", json={"user_id": "u1", "message": "hello"})
    assert res.status_code == 200

    lines = ndjson(res)
    assert lines[0]["content"] == "x"
    assert lines[-1]["error_code"] == "provider_stream_error"
    assert len(lines) == 2
    assert "save" not in store.calls


def test_get_and_end_chat(client, wire):
    wire()
    chat_id = client.post("/chat", json={"user_id": "u1", "message": "hello"}).json()["chat_id"]

    res = client.get(f"/chats/{chat_id}")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "active"
    assert body["model"] == "m"
    assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant"]
    assert body["erased_messages"] == []
    assert body["token_usage"] == sum(m["tokens"] for m in body["messages"])

    assert client.post(f"/chats/{chat_id}/end").status_code == 204
    assert client.get(f"/chats/{chat_id}").json()["status"] == "ended"

    res = client.post("/chat", json={"chat_id": chat_id, "user_id": "u1", "message": "hi?"})
    assert res.status_code == 400
    assert res.json()["detail"]["error_code"] == "message_rejected"


def test_unknown_chat_is_not_found(client, wire):
    wire()
    assert client.get("/chats/missing").status_code == 404
    assert client.post("/chats/missing/end").status_code == 404


def test_chat_inspection_needs_no_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    store = SpyStore()
    chat_id = ChatCompletionService(store=store, provider=FakeProvider()).execute(make_input("hello")).chat_id
    app.dependency_overrides[get_chat_store] = lambda: store
    try:
        assert client.get(f"/chats/{chat_id}").status_code == 200
        assert client.post(f"/chats/{chat_id}/end").status_code == 204
    finally:
        app.dependency_overrides.clear()
    assert store.find_by_id(chat_id).is_ended


def test_early_stream_error_cancels_the_turn(client, wire):
    wire()
    seen = []

    class FailingStreamService:
        def execute(self, input, sink, cancel_event=None):
            seen.append(cancel_event)
            raise ProviderStreamError("refused")

    app.dependency_overrides[get_stream_service] = lambda: FailingStreamService()
    res = client.post("/chat/stream", json={"user_id": "u1", "message": "hello"})

    assert res.status_code == 502
    assert seen[0].is_set()


def test_closing_the_stream_cancels_the_turn(locks):
    gate = threading.Event()

    class GatedProvider(FakeProvider):
        def stream(self, configuration, messages):
            self.requests.append(list(messages))
            yield "a"
            gate.wait(timeout=5)
            yield "b"

    store = SpyStore()
    service = ChatCompletionStreamService(store=store, provider=GatedProvider(), locks=locks)
    events = queue.Queue()
    cancel = threading.Event()
    worker = start_stream(service, make_input("hello"), events, cancel)

    lines = ndjson_lines(events.get(timeout=5), events, cancel)
    assert json.loads(next(lines))["content"] == "a"

    # Client went away
    lines.close()
    assert cancel.is_set()

    gate.set()
    worker.join(timeout=5)
    assert not worker.is_alive()

    leftover = []
    while not events.empty():
        leftover.append(events.get())
    assert any(isinstance(item, CompletionCancelledError) for item in leftover)
    assert "save" not in store.calls
