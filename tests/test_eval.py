from pathlib import Path

from app.config import Settings
from eval import run_eval
from eval.run_eval import compute_classification_metrics, evaluate_rows, load_jsonl, load_policy
from policies.intent import DigitsOnlyIntentPolicy, KeywordIntentPolicy


PROMPTS = Path(__file__).resolve().parent.parent / "eval" / "test_prompts.jsonl"


def test_bundled_prompt_set_passes_with_keyword_policy():
    rows = load_jsonl(PROMPTS)

    report = evaluate_rows(KeywordIntentPolicy(), rows)

    assert report["total"] == len(rows) > 0
    assert report["failures"] == []
    assert report["metrics"]["route"]["accuracy"] == 1.0


def test_route_mismatch_is_reported():
    rows = [{"id": "X1", "message": "Call me at 5551234", "expected_route": "fast", "expected_order_number": "5551234"}]

    report = evaluate_rows(KeywordIntentPolicy(), rows)

    assert report["failed"] == 1
    assert "route mismatch" in report["failures"][0]["reasons"][0]
    assert report["metrics"]["order_number_accuracy"] == 1.0


def test_classification_metrics():
    m = compute_classification_metrics(["fast", "llm", "llm"], ["fast", "fast", "llm"])

    assert m["accuracy"] == round(2 / 3, 4)
    assert m["per_label"]["fast"]["precision"] == 0.5
    assert m["per_label"]["llm"]["recall"] == 0.5


def test_policy_resolved_from_service_settings(monkeypatch):
    monkeypatch.setattr(run_eval, "get_settings", lambda: Settings(intent_policy="digits"))

    assert isinstance(load_policy(), DigitsOnlyIntentPolicy)

    monkeypatch.setattr(run_eval, "get_settings", lambda: Settings())
    assert isinstance(load_policy(), KeywordIntentPolicy)
