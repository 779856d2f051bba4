from unittest.mock import Mock

import pytest

from app.graph import build_graph, plan_route
from app.models import LookupFound, LookupNotFound, OrderRecord
from llm.client import CompletionProviderError
from policies.intent import DigitsOnlyIntentPolicy, KeywordIntentPolicy
from tools.orders import OrderLookupClient


def _run(graph, message):
    return graph.invoke({"message": message, "request_id": "test", "actions": [], "reply": ""})


@pytest.fixture
def order_client():
    client = Mock(spec=OrderLookupClient)
    client.lookup.return_value = LookupFound(record=OrderRecord(id="1234567", status="Shipped"))
    return client


@pytest.fixture
def graph(settings, order_client, completion):
    return build_graph(settings, order_client, completion, KeywordIntentPolicy())


def test_fast_path_skips_the_llm(graph, order_client, completion):
    out = _run(graph, "Where is order 1234567?")

    assert order_client.lookup.call_count == 1
    assert order_client.lookup.call_args.args[0].order_number == "1234567"
    assert completion.calls == []
    assert "1234567" in out["reply"]
    assert "Shipped" in out["reply"]
    assert {"route": "fast"} in out["actions"]


def test_no_identifiers_goes_straight_to_llm(graph, order_client, completion):
    out = _run(graph, "What are your store hours?")

    assert order_client.lookup.call_count == 0
    assert len(completion.calls) == 1
    assert out["reply"] == "LLM reply"
    assert "Order context" not in completion.system_prompt


def test_number_without_keyword_feeds_order_context_to_llm(graph, order_client, completion):
    out = _run(graph, "Can you check 1234567 for me?")

    assert order_client.lookup.call_count == 1
    assert len(completion.calls) == 1
    assert "- Status: Shipped" in completion.system_prompt
    assert out["reply"] == "LLM reply"


def test_digits_policy_takes_fast_path_without_keyword(settings, order_client, completion):
    graph = build_graph(settings, order_client, completion, DigitsOnlyIntentPolicy())

    out = _run(graph, "Can you check 1234567 for me?")

    assert completion.calls == []
    assert "Shipped" in out["reply"]


def test_email_only_lookup_not_found_asks_for_details(graph, order_client, completion):
    order_client.lookup.return_value = LookupNotFound(email="me@shop.com")

    _run(graph, "I placed an order with me@shop.com, where is it?")

    assert order_client.lookup.call_count == 1
    assert "found no matching order" in completion.system_prompt


def test_completion_failure_propagates(settings, order_client, completion):
    completion.error = CompletionProviderError("AuthenticationError")
    graph = build_graph(settings, order_client, completion, KeywordIntentPolicy())

    with pytest.raises(CompletionProviderError):
        _run(graph, "Do you ship to Canada?")


def test_plan_route():
    plan = plan_route("order 2233445 for sam@example.co", KeywordIntentPolicy())

    assert plan["lookup"] is True
    assert plan["fast_path"] is True
    assert plan["identifiers"].email == "sam@example.co"

    plan = plan_route("Do you ship to Canada?", KeywordIntentPolicy())
    assert plan["lookup"] is False
    assert plan["fast_path"] is False


def test_action_log_backend_comes_from_injected_settings(settings, order_client, completion, monkeypatch):
    firestore_client = Mock()
    monkeypatch.setattr("tools.logs.get_firestore_client", lambda: firestore_client)

    logging_graph = build_graph(settings, order_client, completion, KeywordIntentPolicy())
    _run(logging_graph, "Where is order 1234567?")
    assert firestore_client.collection.call_count == 0

    firestore_settings = settings.model_copy(update={"action_log_backend": "firestore"})
    firestore_graph = build_graph(firestore_settings, order_client, completion, KeywordIntentPolicy())
    _run(firestore_graph, "Where is order 1234567?")

    # extract, tool_call, lookup_outcome, route
    assert firestore_client.collection.call_count == 4
    firestore_client.collection.assert_called_with("action_logs")
    events = [c.args[0]["event_type"] for c in firestore_client.collection.return_value.add.call_args_list]
    assert events == ["extract", "tool_call", "lookup_outcome", "route"]
