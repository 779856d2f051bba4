from __future__ import annotations

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import List, Optional

from app.models import (
    LookupFound,
    LookupNotConfigured,
    LookupNotFound,
    LookupOutcome,
    LookupTransportError,
    OrderRecord,
)
from llm.client import load_system_prompt
from llm.schemas import ChatTurn


NOT_CONFIGURED_REPLY = (
    "Order lookup isn't available right now. "
    "Please contact our support team and include your order number so we can check it for you."
)
TRANSPORT_ERROR_REPLY = "I had trouble reaching the order system. Please try again in a moment."
DETAILS_FOOTER = "If you need more details (items, totals, or tracking), please let me know."


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # v2: "Tue, 20 Nov 2012 14:26:23 +0000"
    try:
        dt = parsedate_to_datetime(value)
        if dt:
            return dt
    except (TypeError, ValueError):
        pass
    # v3 / ISO: "2025-01-01" or "2025-01-01T10:00:00Z"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_order_date(value: Optional[str]) -> Optional[str]:
    """M/D/YYYY, or None when the date can't be parsed."""
    dt = _parse_date(value)
    if not dt:
        return None
    return f"{dt.month}/{dt.day}/{dt.year}"


def _order_label(outcome: LookupNotFound, order_number: Optional[str]) -> str:
    return order_number or outcome.order_number or outcome.email or "that order"


def render_found_reply(record: OrderRecord, order_number: Optional[str] = None) -> str:
    number = order_number or record.id
    parts = [f"I found order #{number}. Current status: {record.status}."]

    if record.payment_status:
        parts.append(f"Payment status: {record.payment_status}.")
    if record.shipping_status:
        parts.append(f"Shipping status: {record.shipping_status}.")
    if record.tracking_number:
        parts.append(f"Tracking number: {record.tracking_number}.")

    created = format_order_date(record.date_created)
    if created:
        parts.append(f"It was created on {created}.")

    parts.append(DETAILS_FOOTER)
    return " ".join(parts)


def render_lookup_reply(outcome: LookupOutcome, order_number: Optional[str] = None) -> str:
    """Fast path: one fixed template per outcome, no completion call."""
    if isinstance(outcome, LookupFound):
        return render_found_reply(outcome.record, order_number)

    if isinstance(outcome, LookupNotFound):
        label = _order_label(outcome, order_number)
        return f"I couldn't find an order with the number {label}. Please double-check the number."

    if isinstance(outcome, LookupNotConfigured):
        return NOT_CONFIGURED_REPLY

    if isinstance(outcome, LookupTransportError):
        return TRANSPORT_ERROR_REPLY

    raise TypeError(f"Unhandled lookup outcome: {outcome!r}")


# ---------------------------
# Slow path: system prompt for the completion provider
# ---------------------------
def _order_context(record: OrderRecord) -> str:
    lines = [
        "Order context from our order system. Use these facts exactly as given and do not invent any other order details:",
        f"- Order number: {record.id}",
        f"- Status: {record.status}",
    ]
    if record.payment_status:
        lines.append(f"- Payment status: {record.payment_status}")
    if record.shipping_status:
        lines.append(f"- Shipping status: {record.shipping_status}")
    if record.tracking_number:
        lines.append(f"- Tracking number: {record.tracking_number}")
    created = format_order_date(record.date_created) or record.date_created
    if created:
        lines.append(f"- Created on: {created}")
    return "\n".join(lines)


def _not_found_context(outcome: LookupNotFound) -> str:
    searched = []
    if outcome.order_number:
        searched.append(f"order number {outcome.order_number}")
    if outcome.email:
        searched.append(f"email {outcome.email}")
    what = " and ".join(searched) or "the details the customer gave"
    return (
        f"We looked up {what} in our order system and found no matching order. "
        "Do not guess a status. Ask the customer to double-check the order number "
        "or the email address used at checkout."
    )


UNAVAILABLE_CONTEXT = (
    "Order lookup is temporarily unavailable for this conversation. "
    "Do not guess any order details; tell the customer we can't check orders right now "
    "and suggest trying again shortly or contacting support."
)


def build_system_prompt(store_name: str, outcome: Optional[LookupOutcome] = None) -> str:
    prompt = load_system_prompt(store_name)

    if outcome is None:
        return prompt
    if isinstance(outcome, LookupFound):
        return prompt + "\n\n" + _order_context(outcome.record)
    if isinstance(outcome, LookupNotFound):
        return prompt + "\n\n" + _not_found_context(outcome)
    if isinstance(outcome, (LookupNotConfigured, LookupTransportError)):
        return prompt + "\n\n" + UNAVAILABLE_CONTEXT

    raise TypeError(f"Unhandled lookup outcome: {outcome!r}")


def build_messages(store_name: str, user_message: str, outcome: Optional[LookupOutcome] = None) -> List[ChatTurn]:
    return [
        ChatTurn(role="system", content=build_system_prompt(store_name, outcome)),
        ChatTurn(role="user", content=user_message),
    ]
