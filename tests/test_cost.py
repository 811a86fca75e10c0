from __future__ import annotations

import logging

import pytest

from pagegraph.llm.cost import MODEL_PRICING, BudgetExceededError, CostTracker, ModelPricing, register_model_pricing


def test_model_pricing_estimates_per_million() -> None:
    pricing = ModelPricing(input_per_million=0.59, output_per_million=0.79)

    assert pricing.estimate_cost(1_000_000, 1_000_000) == pytest.approx(1.38)


def test_tracker_accumulates_per_model(dummy_cost_tracker: CostTracker) -> None:
    snapshot = dummy_cost_tracker.record("stub-model", prompt_tokens=1000, completion_tokens=1000)
    dummy_cost_tracker.record("stub-model", prompt_tokens=10, completion_tokens=0)

    assert snapshot.cost_usd == pytest.approx(0.003)
    assert snapshot.total_tokens == 2000
    usage = dummy_cost_tracker.usage_for("stub-model")
    assert usage is not None
    assert usage.calls == 2
    assert dummy_cost_tracker.total_tokens == 2010


def test_unknown_models_are_free(dummy_cost_tracker: CostTracker) -> None:
    snapshot = dummy_cost_tracker.record("mystery", prompt_tokens=500, completion_tokens=500)

    assert snapshot.cost_usd == 0.0
    assert dummy_cost_tracker.total_tokens == 1000


def test_budget_warning_and_hard_limit(dummy_cost_tracker: CostTracker, caplog: pytest.LogCaptureFixture) -> None:
    tracker = dummy_cost_tracker
    tracker.record("stub-model", prompt_tokens=1000, completion_tokens=1000)
    assert caplog.records == []

    with caplog.at_level(logging.WARNING, logger="pagegraph.llm.cost"):
        tracker.record("alt-model", prompt_tokens=250_000, completion_tokens=0)
        tracker.record("stub-model", prompt_tokens=1, completion_tokens=0)
    assert len([record for record in caplog.records if "budget" in record.getMessage()]) == 1
    assert tracker.remaining_budget() == pytest.approx(5.0 - tracker.total_cost)

    with pytest.raises(BudgetExceededError):
        tracker.record("alt-model", prompt_tokens=300_000, completion_tokens=0)


def test_tracker_without_budget_never_raises() -> None:
    tracker = CostTracker(pricing={"m": ModelPricing(1000.0, 1000.0)})

    tracker.record("m", prompt_tokens=1_000_000, completion_tokens=0)

    assert tracker.remaining_budget() is None
    assert tracker.total_cost == pytest.approx(1000.0)


def test_summary_and_reset(dummy_cost_tracker: CostTracker) -> None:
    dummy_cost_tracker.record("alt-model", prompt_tokens=1000, completion_tokens=500)

    summary = dummy_cost_tracker.summary()
    assert summary["total_tokens"] == 1500
    assert summary["by_model"]["alt-model"]["calls"] == 1
    assert summary["total_cost_usd"] == pytest.approx(0.02)

    dummy_cost_tracker.reset()
    assert dummy_cost_tracker.total_tokens == 0
    assert dummy_cost_tracker.summary()["by_model"] == {}


def test_register_model_pricing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(MODEL_PRICING, "placeholder", ModelPricing(0.0, 0.0))

    register_model_pricing("placeholder", input_per_million=2.0, output_per_million=4.0)

    assert MODEL_PRICING["placeholder"].estimate_cost(1_000_000, 0) == pytest.approx(2.0)
    assert CostTracker().record("placeholder", 0, 1_000_000).cost_usd == pytest.approx(4.0)
