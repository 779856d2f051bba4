import logging
from typing import Any, Dict, Optional

import requests

from app.config import Settings
from app.models import (
    ExtractedIdentifiers,
    LookupFound,
    LookupNotConfigured,
    LookupNotFound,
    LookupOutcome,
    LookupTransportError,
    OrderRecord,
)


logger = logging.getLogger(__name__)

MAX_LOGGED_BODY_CHARS = 500


def _first_order(payload: Any) -> Optional[Dict[str, Any]]:
    """
    v3 wraps results in {"data": ...}, v2 returns the object (or a list) directly.
    Returns the first order dict, or None when there is no match.
    """
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]

    if isinstance(payload, list):
        payload = payload[0] if payload else None

    if isinstance(payload, dict) and payload:
        return payload
    return None


def _order_email(raw: Dict[str, Any]) -> Optional[str]:
    email = raw.get("email")
    if not email:
        billing = raw.get("billing_address") or {}
        email = billing.get("email") if isinstance(billing, dict) else None
    return str(email).strip().lower() if email else None


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_order(raw: Dict[str, Any], fallback_id: Optional[str] = None) -> OrderRecord:
    status = raw.get("status") or raw.get("status_id") or "unknown"
    created = raw.get("date_created") or raw.get("date_created_utc") or raw.get("date_modified")

    return OrderRecord(
        id=str(raw.get("id") or fallback_id or "unknown"),
        status=str(status),
        payment_status=_str_or_none(raw.get("payment_status")),
        shipping_status=_str_or_none(raw.get("shipping_status")),
        tracking_number=_str_or_none(raw.get("tracking_number")),
        date_created=_str_or_none(created),
    )


class OrderLookupClient:
    """
    Single-attempt order lookup against the BigCommerce REST API.
    Never raises; every failure becomes a LookupOutcome.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.base = settings.order_api_base_url
        self.timeout = settings.bc_timeout_seconds
        self.s = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "X-Auth-Token": self.settings.bc_access_token or "",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.settings.bc_client_id:
            headers["X-Auth-Client"] = self.settings.bc_client_id
        return headers

    def lookup(self, identifiers: ExtractedIdentifiers) -> LookupOutcome:
        if not self.settings.order_lookup_configured:
            logger.warning("BigCommerce env vars missing; order lookup skipped")
            return LookupNotConfigured()

        if not identifiers.has_any:
            return LookupNotConfigured()

        order_number = identifiers.order_number
        email = identifiers.email

        if order_number:
            url = f"{self.base}/orders/{order_number}"
            params = None
        else:
            url = f"{self.base}/orders"
            params = {"email": email}

        try:
            r = self.s.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("BigCommerce lookup failed: %s", e)
            return LookupTransportError()

        if r.status_code == 404 or r.status_code == 204:
            return LookupNotFound(order_number=order_number, email=email)

        if not (200 <= r.status_code < 300):
            logger.error("BigCommerce error: %s %s", r.status_code, (r.text or "")[:MAX_LOGGED_BODY_CHARS])
            return LookupTransportError()

        try:
            payload = r.json()
        except ValueError as e:
            logger.error("BigCommerce returned invalid JSON: %s", e)
            return LookupTransportError()

        raw = _first_order(payload)
        if raw is None:
            return LookupNotFound(order_number=order_number, email=email)

        # Don't confirm an order exists to someone quoting the wrong email
        if order_number and email:
            on_file = _order_email(raw)
            if on_file and on_file != email.lower():
                logger.info("Email does not match order %s", order_number)
                return LookupNotFound(order_number=order_number, email=email)

        return LookupFound(record=normalize_order(raw, fallback_id=order_number))
