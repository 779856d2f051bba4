# Run with: PYTHONPATH=. python scripts/check_order_lookup.py 1312015
#           PYTHONPATH=. python scripts/check_order_lookup.py jane@example.com
import sys

from app.config import get_settings
from policies.replies import render_lookup_reply
from tools.extract import extract_identifiers
from tools.orders import OrderLookupClient


def main():
    if len(sys.argv) < 2:
        print("Usage: check_order_lookup.py <order number | email | free text>")
        sys.exit(2)

    settings = get_settings()
    text = " ".join(sys.argv[1:])
    identifiers = extract_identifiers(text)

    print("Order API base:", settings.order_api_base_url or "(not set)")
    print("Lookup configured:", settings.order_lookup_configured)
    print("Order number:", identifiers.order_number)
    print("Email:", identifiers.email)

    if not identifiers.has_any:
        print("❌ Nothing to look up. Pass a 5-10 digit order number or an email.")
        sys.exit(1)

    outcome = OrderLookupClient(settings).lookup(identifiers)
    print("Outcome:", outcome.kind)
    if outcome.kind == "found":
        print("Record:", outcome.record.model_dump())
    print("Reply:", render_lookup_reply(outcome, identifiers.order_number))


if __name__ == "__main__":
    main()
