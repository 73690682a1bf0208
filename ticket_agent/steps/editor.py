from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ticket_agent.adapters.llm_base import LLMAdapter, LLMOptions, complete_async
from ticket_agent.config import load_prompt
from ticket_agent.cost import CostTracker
from ticket_agent.errors import EditError
from ticket_agent.gates.parsers import parse_payload
from ticket_agent.models import Ticket

logger = logging.getLogger(__name__)

SIMPLER_INSTRUCTION_HINT = "Try a simpler instruction, for example one ticket change at a time."


@dataclass
class TicketPatch:
    to_remove: List[str] = field(default_factory=list)
    to_add_or_update: List[Ticket] = field(default_factory=list)
    replacement: Optional[List[Ticket]] = None


def apply_patch(tickets: List[Ticket], patch: TicketPatch) -> List[Ticket]:
    """Drop removed ids, then upsert by id. New tickets go to the end."""
    if patch.replacement is not None:
        return list(patch.replacement)
    removed = set(patch.to_remove)
    result = [ticket for ticket in tickets if ticket.id not in removed]
    positions = {ticket.id: index for index, ticket in enumerate(result)}
    for ticket in patch.to_add_or_update:
        if ticket.id in positions:
            result[positions[ticket.id]] = ticket
        else:
            positions[ticket.id] = len(result)
            result.append(ticket)
    return result


def build_edit_prompt(tickets: List[Ticket], instruction: str) -> str:
    summary = "\n".join(f"- {ticket.id} [{ticket.priority}] {ticket.title}" for ticket in tickets)
    details = json.dumps([ticket.to_dict() for ticket in tickets], indent=2)
    return (
        f"Ticket overview:\n{summary}\n\n"
        f"Current tickets:\n{details}\n\n"
        f"Instruction: {instruction}"
    )


def _to_patch(payload: Any) -> TicketPatch:
    if isinstance(payload, list):
        return TicketPatch(replacement=[Ticket.from_dict(item) for item in payload])
    if "tickets" in payload:
        return TicketPatch(replacement=[Ticket.from_dict(item) for item in payload["tickets"]])
    return TicketPatch(
        to_remove=[str(item) for item in payload["toRemove"]],
        to_add_or_update=[Ticket.from_dict(item) for item in payload["toAddOrUpdate"]],
    )


class TicketEditor:
    def __init__(self, adapter: LLMAdapter, options: Optional[LLMOptions] = None) -> None:
        self.adapter = adapter
        self.options = options or LLMOptions(temperature=0.2)
        self.system_prompt = load_prompt("edit_tickets")

    async def edit(self, tickets: List[Ticket], instruction: str, tracker: CostTracker) -> List[Ticket]:
        response = await complete_async(
            self.adapter, self.system_prompt, build_edit_prompt(tickets, instruction), self.options
        )
        tracker.track(response.tokens_in, response.tokens_out)
        try:
            payload = parse_payload(response.raw_text, "edit_result.schema.json", "edited tickets", EditError)
            patch = _to_patch(payload)
        except (EditError, KeyError, TypeError, ValueError) as exc:
            logger.error("Edit response rejected: %s", exc)
            raise EditError(f"Could not apply the edit: {exc}. {SIMPLER_INSTRUCTION_HINT}") from exc
        edited = apply_patch(tickets, patch)

        counts = Counter(ticket.id for ticket in edited)
        duplicates = sorted(ticket_id for ticket_id, count in counts.items() if count > 1)
        if duplicates:
            logger.error("Edit produced duplicate ticket ids: %s", ", ".join(duplicates))
            raise EditError(
                f"Edit produced duplicate ticket ids: {', '.join(duplicates)}. {SIMPLER_INSTRUCTION_HINT}"
            )
        return edited
