import pytest
from fastapi.testclient import TestClient

from nestchat.api.main import app
from nestchat.api.routes.chat import INVALID_FRAME_MESSAGE, SLOW_DOWN_MESSAGE, get_websocket_limiter
from nestchat.core.circuit_breaker import CircuitBreaker, get_llm_circuit_breaker
from nestchat.core.rate_limiter import RateLimiter, WebSocketLimiter, get_ip_rate_limiter, get_user_rate_limiter
from nestchat.database.connection import get_database
from nestchat.memory.manager import MemoryManager
from nestchat.services.chat_service import ChatEngine, get_chat_engine
from nestchat.services.test_chat_service import FakeLLM, FakeStore


class FakeDatabase:
    def __init__(self, healthy=True):
        self.healthy = healthy

    def check_connection(self):
        return self.healthy


def _limiter(burst=100):
    return RateLimiter(rate_per_second=0.001, burst=burst, start_sweeper=False)


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(llm):
    engine = ChatEngine(
        llm_client=llm,
        store=FakeStore(),
        memory_manager=MemoryManager(short_term_size=10),
        circuit_breaker=CircuitBreaker(max_failures=3, reset_timeout_seconds=60),
    )
    ip_limiter, user_limiter = _limiter(), _limiter()

    app.dependency_overrides[get_chat_engine] = lambda: engine
    app.dependency_overrides[get_ip_rate_limiter] = lambda: ip_limiter
    app.dependency_overrides[get_user_rate_limiter] = lambda: user_limiter
    app.dependency_overrides[get_websocket_limiter] = lambda: WebSocketLimiter(messages_per_minute=20)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _receive_turn(ws):
    events = []
    while True:
        event = ws.receive_json()
        events.append(event)
        if event["type"] in ("done", "error"):
            return events


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready_reports_breaker_and_database(client):
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=60)
    app.dependency_overrides[get_database] = lambda: FakeDatabase()
    app.dependency_overrides[get_llm_circuit_breaker] = lambda: breaker

    body = client.get("/health/ready").json()
    assert body["status"] == "ready"
    assert body["checks"]["llm_circuit_breaker"]["state"] == "closed"

    breaker.after_call(RuntimeError("provider down"))
    assert client.get("/health/ready").json()["status"] == "degraded"


def test_ready_fails_without_database(client):
    app.dependency_overrides[get_database] = lambda: FakeDatabase(healthy=False)
    app.dependency_overrides[get_llm_circuit_breaker] = lambda: CircuitBreaker()

    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "unreachable"


def test_chat_small_talk(client, llm):
    response = client.post("/chat", json={"message": "hello", "user_id": "u1"})

    assert response.status_code == 200
    body = response.json()
    assert body["intent"] == "small_talk"
    assert body["message"] == "I'm here with you. How can I help today?"
    assert [e["type"] for e in body["events"]] == ["message", "done"]
    assert llm.requests == []


def test_chat_streams_answer_into_response(client):
    response = client.post("/chat", json={"message": "My back hurts when I walk", "user_id": "u1"})

    body = response.json()
    assert body["message"] == "Let's look at that."
    assert body["used_fallback"] is False
    assert body["events"][-1] == {"type": "done", "content": None, "suggestion": None}


def test_chat_rejects_blank_message(client):
    response = client.post("/chat", json={"message": "   ", "user_id": "u1"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_chat_user_rate_limit(client):
    limiter = _limiter(burst=1)
    app.dependency_overrides[get_user_rate_limiter] = lambda: limiter

    assert client.post("/chat", json={"message": "hello", "user_id": "u1"}).status_code == 200
    response = client.post("/chat", json={"message": "hello", "user_id": "u1"})

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    assert response.json()["error"] == "rate_limit_exceeded"


def test_websocket_turns(client):
    with client.websocket_connect("/chat/ws?user_id=u1") as ws:
        ws.send_json({"message": "hello"})
        assert _receive_turn(ws) == [
            {"type": "message", "content": "I'm here with you. How can I help today?"},
            {"type": "done"},
        ]

        ws.send_json({"message": "My back hurts when I walk", "language": "en"})
        events = _receive_turn(ws)
        text = "".join(e["content"] for e in events if e["type"] == "message")
        assert text == "Let's look at that."
        assert events[-1] == {"type": "done"}


def test_websocket_slow_down(client):
    app.dependency_overrides[get_websocket_limiter] = lambda: WebSocketLimiter(messages_per_minute=1)

    with client.websocket_connect("/chat/ws?user_id=u1") as ws:
        ws.send_json({"message": "hello"})
        assert _receive_turn(ws)[-1] == {"type": "done"}

        ws.send_json({"message": "hello again"})
        assert ws.receive_json() == {"type": "error", "content": SLOW_DOWN_MESSAGE}


def test_websocket_invalid_frame(client):
    with client.websocket_connect("/chat/ws?user_id=u1") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "content": INVALID_FRAME_MESSAGE}
