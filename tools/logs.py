import json
import logging
from datetime import datetime, timezone

from app.config import get_firestore_client


logger = logging.getLogger("orderbot.actions")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def log_action(request_id: str, event_type: str, payload: dict, backend: str = "logging") -> None:
    """
    Writes a structured log for every tool call / decision / error.
    Always goes to the Python logger; with backend="firestore" (the
    ACTION_LOG_BACKEND setting) it is also stored in Firestore collection: action_logs
    """
    record = {
        "request_id": request_id or "unknown",
        "event_type": event_type,  # extract | tool_call | lookup_outcome | route | completion | error | blocked_request
        "payload": payload,
        "ts": _now_iso(),
    }

    level = logging.WARNING if event_type in {"error", "blocked_request"} else logging.INFO
    logger.log(level, "%s %s", event_type, json.dumps(record, default=str))

    if backend != "firestore":
        return

    try:
        get_firestore_client().collection("action_logs").add(record)
    except Exception:
        logger.exception("Failed to write action log to Firestore")
