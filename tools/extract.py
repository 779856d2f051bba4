import re
from typing import Optional

from app.models import ExtractedIdentifiers


# e.g. 1312015; phone-number-like digit runs match too
ORDER_NUMBER_RE = re.compile(r"\b\d{5,10}\b")
EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def extract_order_number(text: str) -> Optional[str]:
    m = ORDER_NUMBER_RE.search(text or "")
    return m.group(0) if m else None


def extract_email(text: str) -> Optional[str]:
    m = EMAIL_RE.search(text or "")
    if not m:
        return None
    return m.group(0)


def extract_identifiers(text: str) -> ExtractedIdentifiers:
    """First order number and first email found in the message. Later matches are ignored."""
    return ExtractedIdentifiers(
        order_number=extract_order_number(text),
        email=extract_email(text),
    )
