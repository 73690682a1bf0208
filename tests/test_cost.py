"""Tests for ticket_agent.cost module."""

import pytest

from ticket_agent.cost import CostTracker, estimate_tokens, load_pricing
from ticket_agent.models import Cost


class TestCostTracker:
    def test_accumulates_two_calls(self, tracker):
        """(100, 50) then (20, 10) sums tokens and per-call prices."""
        first = tracker.track(100, 50)
        second = tracker.track(20, 10)
        cost = tracker.get_cost()
        assert cost.tokens_in == 120
        assert cost.tokens_out == 60
        assert cost.usd == pytest.approx(first.usd + second.usd)
        assert cost.usd == pytest.approx(100 * 0.03 / 1000 + 50 * 0.06 / 1000 + 20 * 0.03 / 1000 + 10 * 0.06 / 1000)

    def test_unknown_model_uses_default_row(self):
        tracker = CostTracker(model="unknown-model")
        tracker.track(1000, 1000)
        assert tracker.get_cost().usd == pytest.approx(0.01 + 0.03)

    def test_reset(self, tracker):
        tracker.track(10, 10)
        tracker.reset()
        assert tracker.get_cost() == Cost()

    def test_get_cost_returns_copy(self, tracker):
        snapshot = tracker.get_cost()
        tracker.track(5, 5)
        assert snapshot.tokens_in == 0


class TestPricing:
    def test_packaged_table_has_default(self):
        pricing = load_pricing()
        assert "default" in pricing
        assert pricing["gpt-4"]["input"] == pytest.approx(0.03 / 1000)

    def test_override_file(self, tmp_path):
        path = tmp_path / "pricing.yaml"
        path.write_text("house-model:\n  input: 1.0\n  output: 2.0\n")
        pricing = load_pricing(path)
        assert pricing["house-model"] == {"input": 0.001, "output": 0.002}
        assert "default" in pricing


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("") == 0


def test_cost_add_sums_fields():
    total = Cost(10, 5, 0.5).add(Cost(1, 2, 0.25))
    assert total == Cost(11, 7, 0.75)
