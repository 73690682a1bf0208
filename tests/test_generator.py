"""Tests for ticket_agent.steps.generator module."""

import asyncio

import pytest

from ticket_agent.errors import GenerationError
from ticket_agent.models import Requirements
from ticket_agent.steps.generator import (
    TicketGenerator,
    batch_count,
    build_batch_prompt,
    minimum_tickets,
    split_batches,
)

from stubs import StubAdapter, batch_payload, requirements_payload, ticket_payload


def _generate(adapter, requirements, tracker, answers=None, on_batch=None):
    generator = TicketGenerator(adapter)
    return asyncio.run(generator.generate(requirements, tracker, answers, on_batch=on_batch))


class TestBatching:
    @pytest.mark.parametrize("features,expected", [(1, 1), (3, 1), (4, 2), (7, 3), (9, 3)])
    def test_batch_count_is_ceiling(self, features, expected):
        names = [f"F{i}" for i in range(features)]
        assert len(split_batches(names)) == expected == batch_count(features)

    def test_batches_keep_feature_order(self):
        assert split_batches(["a", "b", "c", "d"]) == [["a", "b", "c"], ["d"]]

    def test_minimum_tickets(self):
        assert minimum_tickets(1) == 5
        assert minimum_tickets(3) == 9


class TestBatchPrompt:
    def test_first_batch_asks_for_setup_and_justification(self, requirements):
        prompt = build_batch_prompt(requirements, ["Patient login"], 1, 2)
        assert "BATCH 1 of 2" in prompt
        assert "setup/infrastructure" in prompt
        assert "justification" in prompt
        assert "AT LEAST 5 tickets" in prompt
        assert "TICKET-0101" in prompt

    def test_later_batch_prompt(self, requirements):
        prompt = build_batch_prompt(requirements, ["A", "B", "C"], 2, 2, {"Budget?": "$10k"})
        assert "setup/infrastructure" not in prompt
        assert "AT LEAST 9 tickets" in prompt
        assert "TICKET-0201" in prompt
        assert "Q: Budget?\nA: $10k" in prompt


class TestGenerate:
    def test_one_call_per_batch_concatenated(self, requirements, tracker):
        """Four features -> two batches, results concatenated in batch order."""
        adapter = StubAdapter([batch_payload(1, 9, justification=True), batch_payload(2, 5)])
        seen = []

        async def on_batch(batch):
            seen.append((batch.batch_number, batch.total_batches, len(batch.tickets)))

        result = _generate(adapter, requirements, tracker, on_batch=on_batch)
        assert len(adapter.calls) == 2
        assert len(result.tickets) == 14
        assert result.tickets[0].id == "TICKET-0101"
        assert result.tickets[-1].id == "TICKET-0205"
        assert result.justification.pros == ["Granular"]
        assert seen == [(1, 2, 9), (2, 2, 5)]
        assert tracker.get_cost().tokens_in == 200

    def test_string_effort_points_coerced(self, requirements, tracker):
        requirements.features = ["One"]
        adapter = StubAdapter([{"tickets": [ticket_payload("T-1", effortPoints="8")]}])
        result = _generate(adapter, requirements, tracker)
        assert result.tickets[0].effort_points == 8

    def test_batch_failure_aborts_generation(self, requirements, tracker):
        adapter = StubAdapter([batch_payload(1, 5), "not json at all"])
        with pytest.raises(GenerationError, match="batch 2/2"):
            _generate(adapter, requirements, tracker)

    def test_duplicate_ids_across_batches_rejected(self, requirements, tracker):
        adapter = StubAdapter([batch_payload(1, 5), batch_payload(1, 5)])
        with pytest.raises(GenerationError, match="Duplicate ticket ids"):
            _generate(adapter, requirements, tracker)

    def test_no_features_means_no_calls(self, tracker):
        requirements = Requirements.from_dict(requirements_payload(features=[]))
        adapter = StubAdapter([])
        result = _generate(adapter, requirements, tracker)
        assert result.tickets == []
        assert adapter.calls == []
