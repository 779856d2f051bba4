# Run with: PYTHONPATH=. python scripts/recent_action_logs.py [limit] [request_id]
import sys

from google.cloud import firestore

from app.config import get_firestore_client


def main():
    limit = int(sys.argv[1]) if len(sys.argv) > 1 else 20
    request_id = sys.argv[2] if len(sys.argv) > 2 else None

    db = get_firestore_client()
    q = db.collection("action_logs")

    # Filtering on request_id alone avoids a composite index; sort in Python.
    if request_id:
        docs = [d.to_dict() or {} for d in q.where("request_id", "==", request_id).stream()]
        docs.sort(key=lambda d: d.get("ts", ""), reverse=True)
        docs = docs[:limit]
    else:
        docs = [
            d.to_dict() or {}
            for d in q.order_by("ts", direction=firestore.Query.DESCENDING).limit(limit).stream()
        ]

    if not docs:
        print("No action logs found.")
        return

    for d in reversed(docs):
        print(f"{d.get('ts')}  [{d.get('request_id')}]  {d.get('event_type')}: {d.get('payload')}")


if __name__ == "__main__":
    main()
