"""Tests for ticket_agent.steps.validator module."""

import asyncio

from ticket_agent.models import Ticket
from ticket_agent.steps.validator import TicketValidator

from stubs import StubAdapter, ticket_payload


def _validate(adapter, requirements, tracker):
    tickets = [Ticket.from_dict(ticket_payload("T-1"))]
    return asyncio.run(TicketValidator(adapter).validate(tickets, requirements, tracker))


class TestTicketValidator:
    def test_issues_reported(self, requirements, tracker):
        adapter = StubAdapter([
            {
                "valid": False,
                "issues": [
                    {"type": "coverage", "ticketId": None, "description": "No reminder ticket", "suggestedFix": "Add one"}
                ],
            }
        ])
        result = _validate(adapter, requirements, tracker)
        assert result.ok
        assert result.value.valid is False
        assert result.value.issues[0].type == "coverage"
        assert result.value.issues[0].suggested_fix == "Add one"
        assert tracker.get_cost().tokens_in == 100

    def test_clean_report(self, requirements, tracker):
        result = _validate(StubAdapter([{"valid": True, "issues": []}]), requirements, tracker)
        assert result.ok
        assert result.value.valid and result.value.issues == []

    def test_unparseable_reply_is_neutral_failure(self, requirements, tracker):
        """A broken validator reads as valid but the failure is visible."""
        result = _validate(StubAdapter(["the tickets look fine to me"]), requirements, tracker)
        assert not result.ok
        assert result.value.valid is True
        assert result.value.issues == []
        assert result.failure.step == "validate"

    def test_provider_error_is_swallowed(self, requirements, tracker):
        result = _validate(StubAdapter([RuntimeError("503 unavailable")]), requirements, tracker)
        assert not result.ok
        assert result.value.valid is True
