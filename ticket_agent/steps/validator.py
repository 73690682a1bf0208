from __future__ import annotations

import json
import logging
from typing import List, Optional

from ticket_agent.adapters.llm_base import LLMAdapter, LLMOptions, complete_async
from ticket_agent.config import load_prompt
from ticket_agent.cost import CostTracker
from ticket_agent.errors import BestEffortFailure, ParseError
from ticket_agent.gates.parsers import parse_payload
from ticket_agent.models import BestEffortResult, Requirements, Ticket, ValidationIssue, ValidationReport

logger = logging.getLogger(__name__)


def build_validation_prompt(tickets: List[Ticket], requirements: Requirements) -> str:
    return "\n".join(
        [
            "Validate these tickets against the requirements:",
            "",
            "Requirements:",
            f"- Project: {requirements.project_name}",
            f"- Features: {', '.join(requirements.features)}",
            f"- Goals: {', '.join(requirements.goals)}",
            f"- Constraints: {', '.join(requirements.constraints)}",
            "",
            "Tickets:",
            json.dumps([ticket.to_dict() for ticket in tickets], indent=2),
        ]
    )


class TicketValidator:
    def __init__(self, adapter: LLMAdapter, options: Optional[LLMOptions] = None) -> None:
        self.adapter = adapter
        self.options = options or LLMOptions(temperature=0.1)
        self.system_prompt = load_prompt("validate_tickets")

    async def validate(
        self, tickets: List[Ticket], requirements: Requirements, tracker: CostTracker
    ) -> BestEffortResult[ValidationReport]:
        """Advisory coverage check. A failed check reads as valid with no issues."""
        neutral = ValidationReport(valid=True, issues=[])
        try:
            response = await complete_async(
                self.adapter,
                self.system_prompt,
                build_validation_prompt(tickets, requirements),
                self.options,
            )
            tracker.track(response.tokens_in, response.tokens_out)
            payload = parse_payload(response.raw_text, "validation_report.schema.json", "validation report")
        except ParseError as exc:
            logger.warning("Validation parsing failed, assuming valid: %s", exc)
            return BestEffortResult(value=neutral, failure=BestEffortFailure("validate", str(exc)))
        except Exception as exc:  # noqa: BLE001 - validation must never block persistence
            logger.warning("Validation call failed, assuming valid: %s", exc)
            return BestEffortResult(value=neutral, failure=BestEffortFailure("validate", str(exc)))

        issues = [ValidationIssue.from_dict(item) for item in payload["issues"]]
        return BestEffortResult(value=ValidationReport(valid=payload["valid"], issues=issues))
