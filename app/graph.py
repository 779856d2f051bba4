from typing import TypedDict, List, Dict, Any, Optional

from langgraph.graph import StateGraph, END

from app.config import Settings
from app.models import ExtractedIdentifiers, LookupOutcome
from llm.client import CompletionClient
from policies.intent import IntentPolicy
from policies.replies import build_messages, render_lookup_reply
from tools.extract import extract_identifiers
from tools.logs import log_action
from tools.orders import OrderLookupClient


class GraphState(TypedDict, total=False):
    message: str
    request_id: str

    identifiers: ExtractedIdentifiers
    fast_path: bool
    outcome: Optional[LookupOutcome]

    actions: List[Dict[str, Any]]
    reply: str


def plan_route(message: str, policy: IntentPolicy) -> Dict[str, Any]:
    """
    Pure routing decision for a message:
    - identifiers: what the extractor found
    - lookup: whether the order platform will be queried
    - fast_path: whether the reply comes from a template instead of the LLM
    """
    identifiers = extract_identifiers(message)
    fast_path = bool(identifiers.order_number) and policy.wants_fast_path(message, identifiers)
    return {
        "identifiers": identifiers,
        "lookup": identifiers.has_any,
        "fast_path": fast_path,
    }


def build_graph(
    settings: Settings,
    order_client: OrderLookupClient,
    completion_client: CompletionClient,
    intent_policy: IntentPolicy,
):
    def _log(rid: str, event_type: str, payload: dict) -> None:
        log_action(rid, event_type, payload, backend=settings.action_log_backend)

    def extract_node(state: GraphState) -> GraphState:
        state.setdefault("actions", [])
        rid = state.get("request_id") or "unknown"
        msg = state.get("message", "") or ""

        plan = plan_route(msg, intent_policy)
        identifiers = plan["identifiers"]

        state["identifiers"] = identifiers
        state["fast_path"] = plan["fast_path"]
        state["outcome"] = None

        payload = {
            "order_number": identifiers.order_number,
            "has_email": bool(identifiers.email),
            "fast_path": plan["fast_path"],
            "intent_policy": intent_policy.name,
        }
        _log(rid, "extract", payload)
        state["actions"].append({"extract": payload})
        return state

    def route_after_extract(state: GraphState) -> str:
        identifiers = state.get("identifiers")
        if identifiers is not None and identifiers.has_any:
            return "lookup"
        return "compose"

    def lookup_node(state: GraphState) -> GraphState:
        rid = state.get("request_id") or "unknown"
        identifiers = state["identifiers"]

        _log(rid, "tool_call", {"tool": "lookup_order", "order_number": identifiers.order_number})
        outcome = order_client.lookup(identifiers)

        state["outcome"] = outcome
        _log(rid, "lookup_outcome", {"kind": outcome.kind})
        state["actions"].append({"tool": "lookup_order", "outcome": outcome.kind})
        return state

    def compose_node(state: GraphState) -> GraphState:
        rid = state.get("request_id") or "unknown"
        msg = state.get("message", "") or ""
        identifiers = state.get("identifiers") or ExtractedIdentifiers()
        outcome = state.get("outcome")

        if state.get("fast_path") and outcome is not None:
            state["reply"] = render_lookup_reply(outcome, identifiers.order_number)
            _log(rid, "route", {"route": "fast", "outcome": outcome.kind})
            state["actions"].append({"route": "fast"})
            return state

        _log(rid, "route", {"route": "llm", "outcome": outcome.kind if outcome else None})
        messages = build_messages(settings.store_name, msg, outcome)
        state["reply"] = completion_client.complete(messages)

        _log(rid, "completion", {"chars": len(state["reply"])})
        state["actions"].append({"route": "llm"})
        return state

    g = StateGraph(GraphState)

    g.add_node("extract", extract_node)
    g.add_node("lookup", lookup_node)
    g.add_node("compose", compose_node)

    g.set_entry_point("extract")
    g.add_conditional_edges("extract", route_after_extract, {"lookup": "lookup", "compose": "compose"})
    g.add_edge("lookup", "compose")
    g.add_edge("compose", END)

    return g.compile()
