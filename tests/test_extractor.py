"""Tests for ticket_agent.steps.extractor module."""

import asyncio

import pytest

from ticket_agent.errors import ParseError, RequirementsValidationError
from ticket_agent.steps.extractor import RequirementsExtractor, plausibility_problems
from ticket_agent.models import Requirements

from stubs import StubAdapter, requirements_payload


def _extract(adapter, text, tracker):
    return asyncio.run(RequirementsExtractor(adapter).extract(text, tracker))


class TestExtract:
    def test_returns_requirements_and_tracks_cost(self, tracker):
        adapter = StubAdapter([requirements_payload(techHints=["Django"], scope="MVP only")])
        requirements = _extract(adapter, "We need a clinic booking web platform " * 10, tracker)
        assert requirements.project_name == "Clinic Booking"
        assert requirements.tech_hints == ["Django"]
        assert requirements.scope == "MVP only"
        assert tracker.get_cost().tokens_in == 100
        assert tracker.get_cost().tokens_out == 50

    def test_prompt_carries_document(self, tracker):
        adapter = StubAdapter([requirements_payload()])
        _extract(adapter, "Booking platform brief", tracker)
        system_prompt, user_prompt = adapter.calls[0]
        assert "requirements_extraction" in system_prompt
        assert user_prompt.endswith("Booking platform brief")

    def test_fenced_response_accepted(self, tracker):
        import json

        adapter = StubAdapter(["```json\n" + json.dumps(requirements_payload()) + "\n```"])
        assert _extract(adapter, "platform brief", tracker).features

    def test_unparseable_response_is_parse_error(self, tracker):
        adapter = StubAdapter(["Sorry, I cannot help with that."])
        with pytest.raises(ParseError):
            _extract(adapter, "platform brief", tracker)
        assert tracker.get_cost().tokens_in == 100

    def test_wrong_shape_is_parse_error(self, tracker):
        adapter = StubAdapter([{"projectName": "x", "summary": "y"}])
        with pytest.raises(ParseError):
            _extract(adapter, "platform brief", tracker)

    def test_short_commerce_text_rejected(self, tracker):
        """Short purchase requests fail even if the model invents software content."""
        adapter = StubAdapter([requirements_payload()])
        with pytest.raises(RequirementsValidationError) as excinfo:
            _extract(adapter, "I want to buy a house near the beach.", tracker)
        assert any("purchase or transaction" in reason for reason in excinfo.value.reasons)

    def test_missing_features_and_goals_rejected(self, tracker):
        adapter = StubAdapter([requirements_payload(features=[], goals=[])])
        with pytest.raises(RequirementsValidationError) as excinfo:
            _extract(adapter, "Describe the platform", tracker)
        assert len(excinfo.value.reasons) == 2


class TestPlausibility:
    def test_no_software_vocabulary(self):
        requirements = Requirements(
            project_name="Garden",
            summary="Plant roses in spring",
            goals=["Nice flowers"],
            features=["Roses", "Tulips"],
        )
        problems = plausibility_problems(requirements, "Plant roses and tulips in the garden this spring.")
        assert problems == ["The content does not appear to describe a software project or application."]

    def test_long_commerce_text_not_flagged_by_length_rule(self):
        requirements = Requirements.from_dict(requirements_payload())
        text = "We sell furniture and need an online store. " * 10
        assert plausibility_problems(requirements, text) == []
