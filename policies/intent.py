from __future__ import annotations

import re
from typing import Dict, Type

from app.models import ExtractedIdentifiers


ORDER_KEYWORDS_RE = re.compile(r"order|tracking|shipment|shipping|status", re.IGNORECASE)


class IntentPolicy:
    """
    Decides whether a message with an order number is an order-status question
    that can be answered straight from the lookup (fast path).
    """

    name = "base"

    def wants_fast_path(self, message: str, identifiers: ExtractedIdentifiers) -> bool:
        raise NotImplementedError


class KeywordIntentPolicy(IntentPolicy):
    """Order number plus an order-related keyword."""

    name = "keywords"

    def wants_fast_path(self, message: str, identifiers: ExtractedIdentifiers) -> bool:
        if not identifiers.order_number:
            return False
        return bool(ORDER_KEYWORDS_RE.search(message or ""))


class DigitsOnlyIntentPolicy(IntentPolicy):
    """Any order number is enough."""

    name = "digits"

    def wants_fast_path(self, message: str, identifiers: ExtractedIdentifiers) -> bool:
        return bool(identifiers.order_number)


POLICIES: Dict[str, Type[IntentPolicy]] = {
    KeywordIntentPolicy.name: KeywordIntentPolicy,
    DigitsOnlyIntentPolicy.name: DigitsOnlyIntentPolicy,
}


def get_intent_policy(name: str) -> IntentPolicy:
    key = (name or "").strip().lower()
    if key not in POLICIES:
        raise ValueError(f"Unknown INTENT_POLICY {name!r}. Expected one of: {', '.join(sorted(POLICIES))}")
    return POLICIES[key]()
