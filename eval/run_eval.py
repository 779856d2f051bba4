import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from collections import defaultdict

# Run with: PYTHONPATH=. python eval/run_eval.py
from app.graph import plan_route
from app.config import get_settings
from policies.intent import IntentPolicy, get_intent_policy

PROMPTS_PATH = Path("eval/test_prompts.jsonl")
REPORT_PATH = Path("eval/report.json")


def load_jsonl(path: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            rows.append(json.loads(line))
    return rows


def route_label(plan: Dict[str, Any]) -> str:
    """
    fast: templated reply from the order lookup
    lookup_llm: order looked up, reply from the LLM with order context
    llm: no identifiers, LLM only
    """
    if plan["fast_path"]:
        return "fast"
    if plan["lookup"]:
        return "lookup_llm"
    return "llm"


# ---------------------------
# Metrics helpers
# ---------------------------
def _safe_div(a: float, b: float) -> float:
    return a / b if b else 0.0


def compute_classification_metrics(y_true: List[str], y_pred: List[str]) -> Dict[str, Any]:
    labels = sorted(set(y_true) | set(y_pred))

    cm: Dict[str, Dict[str, int]] = {t: {p: 0 for p in labels} for t in labels}
    for t, p in zip(y_true, y_pred):
        cm[t][p] += 1

    per_label: Dict[str, Any] = {}
    for lab in labels:
        tp = cm[lab][lab]
        fp = sum(cm[t][lab] for t in labels if t != lab)
        fn = sum(cm[lab][p] for p in labels if p != lab)

        prec = _safe_div(tp, tp + fp)
        rec = _safe_div(tp, tp + fn)
        f1 = _safe_div(2 * prec * rec, prec + rec)

        support = sum(cm[lab].values())
        per_label[lab] = {
            "precision": round(prec, 4),
            "recall": round(rec, 4),
            "f1": round(f1, 4),
            "support": support,
        }

    acc = _safe_div(sum(cm[l][l] for l in labels), len(y_true))
    macro_f1 = _safe_div(sum(per_label[l]["f1"] for l in labels), len(labels))

    return {
        "labels": labels,
        "accuracy": round(acc, 4),
        "macro_f1": round(macro_f1, 4),
        "per_label": per_label,
        "confusion_matrix": cm,
    }


def exact_match_accuracy(y_true: List[Optional[str]], y_pred: List[Optional[str]]) -> float:
    return round(_safe_div(sum(t == p for t, p in zip(y_true, y_pred)), len(y_true)), 4)


def load_policy() -> IntentPolicy:
    """Same INTENT_POLICY resolution as the service."""
    return get_intent_policy(get_settings().intent_policy)


def _suite_name(row: Dict[str, Any]) -> str:
    s = (row.get("suite") or "core").strip().lower()
    return s if s else "core"


def evaluate_rows(policy: IntentPolicy, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(rows)
    passed = 0
    failures: List[Dict[str, Any]] = []
    results: List[Dict[str, Any]] = []

    y_true_route: List[str] = []
    y_pred_route: List[str] = []
    y_true_order: List[Optional[str]] = []
    y_pred_order: List[Optional[str]] = []
    y_true_email: List[Optional[str]] = []
    y_pred_email: List[Optional[str]] = []

    for row in rows:
        plan = plan_route(row["message"], policy)
        identifiers = plan["identifiers"]
        route = route_label(plan)

        got = {
            "route": route,
            "order_number": identifiers.order_number,
            "email": identifiers.email,
        }

        ok = True
        reasons: List[str] = []

        expected_route = row.get("expected_route")
        if expected_route is not None:
            y_true_route.append(expected_route)
            y_pred_route.append(route)
            if route != expected_route:
                ok = False
                reasons.append(f"route mismatch: expected={expected_route} got={route}")

        # "expected_order_number": null is a real expectation (nothing to extract)
        if "expected_order_number" in row:
            y_true_order.append(row["expected_order_number"])
            y_pred_order.append(identifiers.order_number)
            if identifiers.order_number != row["expected_order_number"]:
                ok = False
                reasons.append(
                    f"order_number mismatch: expected={row['expected_order_number']} got={identifiers.order_number}"
                )

        if "expected_email" in row:
            y_true_email.append(row["expected_email"])
            y_pred_email.append(identifiers.email)
            if identifiers.email != row["expected_email"]:
                ok = False
                reasons.append(f"email mismatch: expected={row['expected_email']} got={identifiers.email}")

        if ok:
            passed += 1
        else:
            failures.append({"id": row["id"], "message": row["message"], "reasons": reasons, "got": got})

        results.append({"id": row["id"], "message": row["message"], "got": got, "pass": ok})

    pass_rate = (passed / total) * 100 if total else 0.0

    metrics: Dict[str, Any] = {}
    if y_true_route:
        metrics["route"] = compute_classification_metrics(y_true_route, y_pred_route)
    if y_true_order:
        metrics["order_number_accuracy"] = exact_match_accuracy(y_true_order, y_pred_order)
    if y_true_email:
        metrics["email_accuracy"] = exact_match_accuracy(y_true_email, y_pred_email)

    return {
        "total": total,
        "passed": passed,
        "failed": total - passed,
        "pass_rate": round(pass_rate, 4),
        "metrics": metrics,
        "failures": failures[:25],
        "results": results,
    }


def main():
    policy = load_policy()

    prompts = load_jsonl(PROMPTS_PATH)
    run_id = str(int(time.time()))

    suites: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for row in prompts:
        suites[_suite_name(row)].append(row)

    overall = evaluate_rows(policy, prompts)

    print(f"\n=== Routing Eval Report (ALL, policy={policy.name}) ===")
    print(f"Total: {overall['total']} | Passed: {overall['passed']} | Failed: {overall['failed']} | Pass rate: {overall['pass_rate']:.2f}%\n")

    if overall["failures"]:
        print("--- Top failures (up to 10) ---\n")
        for f in overall["failures"][:10]:
            print(f"[{f['id']}] {f['message']}")
            for r in f["reasons"]:
                print(f"  - {r}")
            print(f"  got: {f['got']}\n")

    m = overall["metrics"]
    if "route" in m:
        print("=== Metrics (ALL) ===")
        print(f"Route accuracy: {m['route']['accuracy']}")
        print(f"Route macro F1: {m['route']['macro_f1']}")
    if "order_number_accuracy" in m:
        print(f"Order-number accuracy: {m['order_number_accuracy']}")
    if "email_accuracy" in m:
        print(f"Email accuracy: {m['email_accuracy']}")
    print("")

    per_suite: Dict[str, Any] = {}
    for sname, rows in suites.items():
        per_suite[sname] = evaluate_rows(policy, rows)

    for sname in sorted(per_suite.keys()):
        s = per_suite[sname]
        print(f"=== Suite: {sname} ===")
        print(f"Total: {s['total']} | Passed: {s['passed']} | Failed: {s['failed']} | Pass rate: {s['pass_rate']:.2f}%")
        if "route" in s["metrics"]:
            print(f"  Route acc: {s['metrics']['route']['accuracy']} | macro F1: {s['metrics']['route']['macro_f1']}")
        print("")

    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text(
        json.dumps(
            {
                "run_id": run_id,
                "intent_policy": policy.name,
                "overall": overall,
                "suites": per_suite,
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    print(f"Saved: {REPORT_PATH}")


if __name__ == "__main__":
    main()
