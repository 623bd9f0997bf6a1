"""Tests for the HTTP endpoints."""
import json

import pytest
from fastapi.testclient import TestClient

from conftest import EngineStub, make_service
from tripassist.main import app
from tripassist.services.delivery import get_delivery_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_delivery_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_service(service):
    app.dependency_overrides[get_delivery_service] = lambda: service


def data_events(text: str) -> list[dict]:
    return [
        json.loads(block[len("data: "):])
        for block in text.strip().split("\n\n")
        if block.startswith("data: ")
    ]


class TestSubmit:
    """POST /api/submit"""

    def test_returns_session_id(self, client, engine, preferences_data):
        """Async submit answers with the session id handed to the engine."""
        response = client.post("/api/submit", json=preferences_data)

        assert response.status_code == 200
        session_id = response.json()["sessionId"]
        assert json.loads(engine.requests[0].content)["sessionId"] == session_id

    def test_invalid_preferences(self, client, engine, preferences_data):
        """An invalid body is rejected before the engine is called."""
        preferences_data["destination"] = "R"
        response = client.post("/api/submit", json=preferences_data)

        assert response.status_code == 422
        assert engine.requests == []

    def test_configuration_error(self, client, preferences_data):
        """A local APP_URL is reported as a configuration error."""
        use_service(make_service(app_url="http://127.0.0.1:3000"))
        response = client.post("/api/submit", json=preferences_data)

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "configuration_error"
        assert "public URL" in body["error"]

    def test_submission_error(self, client, preferences_data):
        """An engine failure maps to 502."""
        use_service(make_service(EngineStub(status_code=503)))
        response = client.post("/api/submit", json=preferences_data)

        assert response.status_code == 502
        assert response.json()["code"] == "submission_error"

    def test_sync_mode_returns_itinerary(self, client, preferences_data, itinerary_data):
        """Sync mode returns the itinerary in the submit response."""
        use_service(make_service(EngineStub(json_body={"itinerary": itinerary_data}), submission_mode="sync"))
        response = client.post("/api/submit", json=preferences_data)

        assert response.status_code == 200
        assert response.json()["itinerary"]["destination"] == "Rome"


class TestResultAndWebhook:
    """GET /api/result and POST /api/webhook"""

    def test_missing_session_id(self, client):
        """Requests without a usable session id get 400."""
        assert client.get("/api/result").status_code == 400
        assert client.get("/api/result", params={"sessionId": "../x"}).status_code == 400

    def test_end_to_end(self, client, preferences_data, itinerary_data):
        """Submit, poll pending, receive the callback, poll completed."""
        session_id = client.post("/api/submit", json=preferences_data).json()["sessionId"]
        assert client.get("/api/result", params={"sessionId": session_id}).json() == {"status": "pending"}

        ack = client.post(f"/api/webhook?sessionId={session_id}", json={"itinerary": itinerary_data})
        assert ack.status_code == 200
        assert ack.json()["success"] is True

        body = client.get("/api/result", params={"sessionId": session_id}).json()
        assert body["status"] == "completed"
        assert body["itinerary"]["destination"] == "Rome"

    def test_error_callback_without_submit(self, client):
        """An error callback for an unseen id is stored verbatim."""
        ack = client.post("/api/webhook?sessionId=qrs", json={"error": "No flights found"})
        assert ack.json()["success"] is True

        body = client.get("/api/result", params={"sessionId": "qrs"}).json()
        assert body["status"] == "failed"
        assert body["error"] == "No flights found"

    def test_invalid_payload_is_still_acknowledged(self, client):
        """The engine is acknowledged even when its payload is unusable."""
        ack = client.post("/api/webhook?sessionId=abc", json={"foo": "bar"})

        assert ack.status_code == 200
        assert ack.json()["success"] is True
        body = client.get("/api/result", params={"sessionId": "abc"}).json()
        assert body["status"] == "failed"
        assert body["code"] == "validation_error"

    def test_unreadable_body(self, client):
        """A non-JSON body is recorded as a failure."""
        ack = client.post(
            "/api/webhook?sessionId=abc",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert ack.status_code == 200
        assert client.get("/api/result", params={"sessionId": "abc"}).json()["status"] == "failed"

    def test_webhook_requires_session_id(self, client):
        """The webhook refuses callbacks without a session id."""
        response = client.post("/api/webhook", json={"itinerary": {}})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Session ID is required"}


class TestStream:
    """GET /api/stream"""

    def test_missing_session_id(self, client):
        """Requests without a usable session id get 400."""
        assert client.get("/api/stream").status_code == 400

    def test_result_already_available(self, client, itinerary_data):
        """A finished session streams one event with SSE headers."""
        client.post("/api/webhook?sessionId=abc", json={"itinerary": itinerary_data})

        response = client.get("/api/stream", params={"sessionId": "abc"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        events = data_events(response.text)
        assert len(events) == 1
        assert events[0]["itinerary"]["destination"] == "Rome"

    def test_safety_timeout(self, client):
        """A stream with no result ends with a timeout event."""
        use_service(make_service(stream_keepalive_seconds=0.01, stream_timeout_seconds=0.05))

        response = client.get("/api/stream", params={"sessionId": "abc"})

        assert ": keep-alive" in response.text
        [event] = data_events(response.text)
        assert event["code"] == "timeout"


class TestHealth:
    """GET /health"""

    def test_health(self, client):
        """Health reports the active store and submission mode."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "store": "memory", "submission_mode": "async"}
