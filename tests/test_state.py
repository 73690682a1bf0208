"""Tests for ticket_agent.state module."""

import pytest

from ticket_agent.errors import ParseError, TicketAgentError
from ticket_agent.models import Ticket
from ticket_agent.state import MERGE_RULES, WorkflowState, merge

from stubs import ticket_payload


class TestMerge:
    def test_empty_delta_returns_same_state(self):
        state = WorkflowState(raw_text="x")
        assert merge(state, {}) is state

    def test_provided_value_replaces(self):
        state = merge(WorkflowState(raw_text="old"), {"raw_text": "new"})
        assert state.raw_text == "new"

    def test_none_keeps_previous(self):
        state = merge(WorkflowState(raw_text="old", project_id="p"), {"project_id": None})
        assert state.project_id == "p"

    def test_lists_are_replaced_not_appended(self):
        first = [Ticket.from_dict(ticket_payload("T-1"))]
        second = [Ticket.from_dict(ticket_payload("T-2"))]
        state = merge(WorkflowState(tickets=first), {"tickets": second})
        assert [ticket.id for ticket in state.tickets] == ["T-2"]

    def test_first_error_sticks(self):
        original = ParseError("first")
        state = merge(WorkflowState(), {"error": original})
        state = merge(state, {"error": TicketAgentError("second")})
        assert state.error is original
        assert state.failed

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="bogus"):
            merge(WorkflowState(), {"bogus": 1})

    def test_merge_does_not_mutate_input(self):
        state = WorkflowState(raw_text="a")
        merge(state, {"raw_text": "b"})
        assert state.raw_text == "a"


def test_every_field_has_a_rule():
    assert MERGE_RULES["error"] == "first"
    assert set(MERGE_RULES.values()) == {"replace", "first"}
