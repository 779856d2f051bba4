from unittest.mock import Mock

import pytest
import requests
from fastapi.testclient import TestClient

from app.main import create_app
from llm.client import CompletionProviderError
from tests.fakes import FakeResponse
from tools.orders import OrderLookupClient


@pytest.fixture
def client(settings, session, completion):
    app = create_app(
        settings=settings,
        order_client=OrderLookupClient(settings, session=session),
        completion_client=completion,
    )
    return TestClient(app)


def test_home_banner(client):
    r = client.get("/")

    assert r.status_code == 200
    assert "running" in r.text
    assert r.headers["content-type"].startswith("text/plain")


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize("body", [{"message": ""}, {"message": "   "}, {}, {"message": None}])
def test_empty_message_is_rejected(client, session, completion, body):
    r = client.post("/ai/chat", json=body)

    assert r.status_code == 400
    assert r.json() == {"reply": "No message provided."}
    assert session.get.call_count == 0
    assert completion.calls == []


def test_malformed_body_is_400(client):
    r = client.post("/ai/chat", content=b"not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert "reply" in r.json()


def test_too_long_message_is_413(client, settings, completion):
    r = client.post("/ai/chat", json={"message": "x" * (settings.max_message_chars + 1)})

    assert r.status_code == 413
    assert str(settings.max_message_chars) in r.json()["reply"]
    assert completion.calls == []


def test_order_status_scenario(client, session, completion):
    session.get.return_value = FakeResponse(
        200, {"data": [{"id": 1234567, "status": "Shipped", "date_created": "2025-01-01"}]}
    )

    r = client.post("/ai/chat", json={"message": "Where is order 1234567?"})

    assert r.status_code == 200
    reply = r.json()["reply"]
    assert "1234567" in reply
    assert "Shipped" in reply
    assert "1/1/2025" in reply
    assert completion.calls == []


def test_order_not_found_scenario(client, session):
    session.get.return_value = FakeResponse(404)

    r = client.post("/ai/chat", json={"message": "order status for 99999"})

    assert r.status_code == 200
    assert "99999" in r.json()["reply"]
    assert "I found" not in r.json()["reply"]


def test_transport_error_is_in_band_and_does_not_leak(client, session):
    session.get.return_value = FakeResponse(500, text="secret upstream stack trace")

    r = client.post("/ai/chat", json={"message": "tracking 1234567"})

    assert r.status_code == 200
    assert "trouble reaching the order system" in r.json()["reply"]
    assert "secret" not in r.text


def test_not_configured_is_in_band(unconfigured_settings, completion):
    session = Mock(spec=requests.Session)
    app = create_app(
        settings=unconfigured_settings,
        order_client=OrderLookupClient(unconfigured_settings, session=session),
        completion_client=completion,
    )

    r = TestClient(app).post("/ai/chat", json={"message": "Where is order 1234567?"})

    assert r.status_code == 200
    assert "isn't available" in r.json()["reply"]
    assert session.get.call_count == 0


def test_general_question_uses_llm_only(client, session, completion):
    r = client.post("/ai/chat", json={"message": "What are your store hours?"})

    assert r.status_code == 200
    assert r.json() == {"reply": "LLM reply"}
    assert session.get.call_count == 0
    assert len(completion.calls) == 1


def test_numeric_message_is_coerced(client, session, completion):
    session.get.return_value = FakeResponse(404)

    r = client.post("/ai/chat", json={"message": 1234567})

    assert r.status_code == 200
    assert session.get.call_count == 1


def test_completion_failure_is_500_apology(client, completion):
    completion.error = CompletionProviderError("AuthenticationError")

    r = client.post("/ai/chat", json={"message": "Do you ship to Canada?"})

    assert r.status_code == 500
    assert "Sorry" in r.json()["reply"]
    assert "AuthenticationError" not in r.text


def test_unexpected_failure_is_500(client, completion):
    completion.error = RuntimeError("boom")

    r = client.post("/ai/chat", json={"message": "Do you ship to Canada?"})

    assert r.status_code == 500
    assert r.json() == {"reply": "Error processing request."}


def test_identical_requests_are_not_cached(client, session):
    session.get.return_value = FakeResponse(200, {"id": 1234567, "status": "Shipped"})

    first = client.post("/ai/chat", json={"message": "Where is order 1234567?"})
    second = client.post("/ai/chat", json={"message": "Where is order 1234567?"})

    assert session.get.call_count == 2
    assert first.json() == second.json()


def test_blocked_request_logged_with_injected_backend(settings, session, completion, monkeypatch):
    firestore_client = Mock()
    monkeypatch.setattr("tools.logs.get_firestore_client", lambda: firestore_client)
    firestore_settings = settings.model_copy(update={"action_log_backend": "firestore", "max_message_chars": 10})
    app = create_app(
        settings=firestore_settings,
        order_client=OrderLookupClient(firestore_settings, session=session),
        completion_client=completion,
    )

    r = TestClient(app).post("/ai/chat", json={"message": "x" * 11})

    assert r.status_code == 413
    doc = firestore_client.collection.return_value.add.call_args.args[0]
    assert doc["event_type"] == "blocked_request"
    assert doc["payload"]["reason"] == "message_too_long"
