import os
import pytest
from fastapi.testclient import TestClient
from app.main import app

from test_chat import parse_sse

# Needs a real OpenAI key and a reachable Postgres at DB_URI.
pytestmark = pytest.mark.skipif(not os.getenv("RUN_INTEGRATION"), reason="RUN_INTEGRATION not set")


@pytest.fixture
def live_client():
    app.dependency_overrides.clear()
    # Entering the context runs the lifespan: pool, scripts table, chat model.
    with TestClient(app) as client:
        yield client


def test_integration_openai_streaming(live_client):
    """
    Hits the real provider and database to verify the streaming path end to end:
    the sample script is found, deltas arrive, and the stream terminates.
    """
    payload = {
        "messages": [{"role": "user", "content": "Narrate the sample scene in one sentence."}],
        "stream": True,
        "mode": "narrate",
    }

    with live_client.stream("POST", "/chat", json=payload) as response:
        assert response.status_code == 200
        events = parse_sse(response.iter_lines())

    assert events[0]["scene"]["name"] == "Sample Script"
    assert any("content" in e or e.get("type") == "script" for e in events)
    assert not any("error" in e for e in events)
    assert events[-1] == {"done": True}


def test_integration_status(live_client):
    body = live_client.get("/api/status").json()
    assert body["database"] == "connected"
