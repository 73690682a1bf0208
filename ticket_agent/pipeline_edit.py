from __future__ import annotations

import logging
from typing import Optional

from ticket_agent.adapters.llm_base import LLMAdapter
from ticket_agent.config import Settings
from ticket_agent.cost import CostTracker, load_pricing
from ticket_agent.errors import ProjectNotFound, TicketAgentError
from ticket_agent.models import ProjectState
from ticket_agent.pipeline_tickets import build_adapter
from ticket_agent.steps.editor import TicketEditor
from ticket_agent.storage import ProjectStore
from ticket_agent.utils.time import utc_iso

logger = logging.getLogger(__name__)


class EditPipeline:
    def __init__(
        self,
        settings: Settings,
        adapter: Optional[LLMAdapter] = None,
        store: Optional[ProjectStore] = None,
    ) -> None:
        self.settings = settings
        self.adapter = adapter or build_adapter(settings)
        self.store = store or ProjectStore(settings.data_dir)
        self.pricing = load_pricing(settings.pricing_file)
        self.editor = TicketEditor(self.adapter)

    async def run(self, project_id: str, instruction: str) -> ProjectState:
        existing = self.store.load(project_id)
        if existing is None:
            raise ProjectNotFound(project_id)

        tracker = CostTracker(model=getattr(self.adapter, "model", "default"), pricing=self.pricing)
        # Failures surface here, before anything is written.
        try:
            tickets = await self.editor.edit(existing.tickets, instruction, tracker)
        except TicketAgentError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("edit step crashed")
            raise TicketAgentError(f"Edit error: {exc}") from exc

        updated = ProjectState(
            id=existing.id,
            raw_text=existing.raw_text,
            requirements=existing.requirements,
            tickets=tickets,
            cost=existing.cost.add(tracker.get_cost()),
            created_at=existing.created_at,
            updated_at=utc_iso(),
            clarifications=existing.clarifications,
            answers=existing.answers,
            justification=existing.justification,
        )
        self.store.persist(updated)
        logger.info(
            "Edited project %s: %s -> %s tickets", project_id, len(existing.tickets), len(tickets)
        )
        return updated
