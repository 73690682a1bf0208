from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ticket_agent.adapters.gemini_adapter import GeminiAdapter
from ticket_agent.adapters.llm_base import LLMAdapter, LLMOptions
from ticket_agent.adapters.mock_adapter import MockAdapter
from ticket_agent.adapters.openai_adapter import OpenAIAdapter
from ticket_agent.config import Settings
from ticket_agent.cost import CostTracker, load_pricing
from ticket_agent.errors import FatalInputError, ProjectNotFound, TicketAgentError
from ticket_agent.events import COMPLETE, ERROR, PROGRESS, STATUS, EventChannel, EventSink
from ticket_agent.gates.security import sanitize
from ticket_agent.models import Cost, ProjectState
from ticket_agent.state import WorkflowState, merge
from ticket_agent.steps.clarifier import clarify
from ticket_agent.steps.document import DocumentInput, parse_document
from ticket_agent.steps.extractor import RequirementsExtractor
from ticket_agent.steps.generator import BatchResult, TicketGenerator
from ticket_agent.steps.similarity import search_similar
from ticket_agent.steps.validator import TicketValidator
from ticket_agent.storage import ProjectStore
from ticket_agent.utils.time import utc_iso

logger = logging.getLogger(__name__)

Delta = Dict[str, Any]


def build_adapter(settings: Settings) -> LLMAdapter:
    if settings.mode == "mock":
        return MockAdapter()
    if settings.provider == "gemini":
        return GeminiAdapter(model=settings.model)
    return OpenAIAdapter(model=settings.model)


@dataclass
class RunContext:
    tracker: CostTracker
    events: EventChannel
    document: Optional[DocumentInput] = None
    base_cost: Cost = field(default_factory=Cost)

    def current_cost(self) -> Cost:
        return self.base_cost.add(self.tracker.get_cost())


NodeFn = Callable[[WorkflowState, RunContext], Awaitable[Delta]]


@dataclass
class Node:
    name: str
    run: NodeFn
    best_effort: bool = False


class TicketPipeline:
    """Document -> requirements -> tickets, persisted as one project file.

    Nodes run strictly in order. A required node that fails records the error
    on the state and every later required node becomes a no-op. Best-effort
    nodes (similarity, validate) always run and never set the error.
    """

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
        extraction_options = LLMOptions(
            temperature=settings.temperature, max_output_tokens=settings.max_output_tokens
        )
        generation_options = LLMOptions(temperature=0.3, max_output_tokens=settings.max_output_tokens)
        self.extractor = RequirementsExtractor(self.adapter, extraction_options)
        self.generator = TicketGenerator(
            self.adapter, generation_options, features_per_batch=settings.features_per_batch
        )
        self.validator = TicketValidator(self.adapter)

    def new_tracker(self) -> CostTracker:
        return CostTracker(model=getattr(self.adapter, "model", "default"), pricing=self.pricing)

    def nodes(self) -> List[Node]:
        return [
            Node("parse", self._parse_node),
            Node("security", self._security_node),
            Node("extract", self._extract_node),
            Node("clarify", self._clarify_node),
            Node("similarity", self._similarity_node, best_effort=True),
            Node("generate", self._generate_node),
            Node("validate", self._validate_node, best_effort=True),
            Node("persist", self._persist_node),
        ]

    async def execute(
        self, nodes: Sequence[Node], state: WorkflowState, ctx: RunContext
    ) -> WorkflowState:
        for node in nodes:
            if state.failed and not node.best_effort:
                logger.debug("Skipping %s after earlier failure", node.name)
                continue
            delta = await self._run_node(node, state, ctx)
            state = merge(state, delta)
        return state

    async def _run_node(self, node: Node, state: WorkflowState, ctx: RunContext) -> Delta:
        try:
            return await node.run(state, ctx)
        except TicketAgentError as exc:
            if node.best_effort:
                logger.warning("%s step failed: %s", node.name, exc)
                return {}
            logger.error("%s step failed: %s", node.name, exc)
            ctx.events.emit(ERROR, str(exc), {"step": node.name})
            return {"error": exc, "cost": ctx.current_cost()}
        except Exception as exc:  # noqa: BLE001 - surfaced through state.error
            if node.best_effort:
                logger.warning("%s step failed: %s", node.name, exc)
                return {}
            logger.exception("%s step crashed", node.name)
            wrapped = TicketAgentError(f"{node.name.capitalize()} error: {exc}")
            wrapped.__cause__ = exc
            ctx.events.emit(ERROR, str(wrapped), {"step": node.name})
            return {"error": wrapped, "cost": ctx.current_cost()}

    async def run(
        self,
        document: DocumentInput,
        project_id: Optional[str] = None,
        on_event: Optional[EventSink] = None,
    ) -> ProjectState:
        created_at = None
        if project_id:
            existing = self.store.load(project_id)
            created_at = existing.created_at if existing else None

        async with EventChannel(on_event) as events:
            ctx = RunContext(tracker=self.new_tracker(), events=events, document=document)
            initial = WorkflowState(project_id=project_id, file_size=document.size, created_at=created_at)
            state = await self.execute(self.nodes(), initial, ctx)
            return self._finish(state, ctx, "Tickets generated successfully!")

    async def run_with_clarifications(
        self,
        project_id: str,
        answers: Dict[str, str],
        on_event: Optional[EventSink] = None,
        validate: Optional[bool] = None,
    ) -> ProjectState:
        existing = self.store.load(project_id)
        if existing is None:
            raise ProjectNotFound(project_id)
        merged_answers = {**existing.answers, **answers}
        should_validate = self.settings.validate_on_clarify if validate is None else validate

        nodes = [Node("generate", self._generate_node)]
        if should_validate:
            nodes.append(Node("validate", self._validate_node, best_effort=True))
        nodes.append(Node("persist", self._persist_node))

        async with EventChannel(on_event) as events:
            ctx = RunContext(tracker=self.new_tracker(), events=events, base_cost=existing.cost)
            initial = WorkflowState(
                raw_text=existing.raw_text,
                project_id=existing.id,
                requirements=existing.requirements,
                clarifications=list(existing.clarifications),
                answers=merged_answers,
                tickets=list(existing.tickets),
                justification=existing.justification,
                cost=existing.cost,
                created_at=existing.created_at,
            )
            state = await self.execute(nodes, initial, ctx)
            return self._finish(state, ctx, "Tickets regenerated with your answers!")

    def _finish(self, state: WorkflowState, ctx: RunContext, message: str) -> ProjectState:
        if state.error is not None:
            raise state.error
        project = ProjectState(
            id=state.project_id,
            raw_text=state.raw_text,
            requirements=state.requirements,
            tickets=state.tickets,
            cost=ctx.current_cost(),
            created_at=state.created_at,
            updated_at=state.updated_at,
            clarifications=state.clarifications,
            answers=state.answers,
            justification=state.justification,
        )
        ctx.events.emit(COMPLETE, message, {"project": project.to_dict()})
        return project

    async def _parse_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Parsing document...")
        if ctx.document is None:
            return {}
        return {"raw_text": parse_document(ctx.document)}

    async def _security_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Running security checks...")
        result = sanitize(state.raw_text, state.file_size, self.settings.max_file_mb)
        if not result.passed:
            raise FatalInputError(f"Security check failed: {result.reason}")
        if result.sanitized_text is not None:
            ctx.events.emit(
                PROGRESS, f"Input sanitized: {result.reason}", {"findings": list(result.findings)}
            )
            return {"raw_text": result.sanitized_text}
        return {}

    async def _extract_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Extracting requirements...")
        requirements = await self.extractor.extract(state.raw_text, ctx.tracker)
        logger.info("Extracted requirements: %s", requirements.project_name)
        ctx.events.emit(
            PROGRESS,
            f"Requirements extracted: {requirements.project_name}",
            {"requirements": requirements.to_dict()},
        )
        return {"requirements": requirements, "cost": ctx.current_cost()}

    async def _clarify_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Checking for clarifications...")
        if state.requirements is None:
            raise TicketAgentError("Requirements not available for clarification")
        questions = clarify(state.requirements)
        if questions:
            ctx.events.emit(
                PROGRESS,
                f"Found {len(questions)} question(s) for clarification",
                {"clarifications": questions},
            )
        else:
            ctx.events.emit(PROGRESS, "No clarifications needed")
        return {"clarifications": questions}

    async def _similarity_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Searching for similar projects...")
        if state.requirements is None:
            return {}
        result = search_similar(self.store, state.requirements.summary)
        if result.value:
            ctx.events.emit(
                PROGRESS,
                f"Found {len(result.value)} similar project(s)",
                {"suggestions": result.value},
            )
        return {"suggestions": result.value}

    async def _generate_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Generating tickets...")
        if state.requirements is None:
            raise TicketAgentError("Requirements not available for ticket generation")

        async def on_batch(batch: BatchResult) -> None:
            ctx.events.emit(
                PROGRESS,
                f"Batch {batch.batch_number}/{batch.total_batches}: {len(batch.tickets)} ticket(s)",
                {
                    "batch": batch.batch_number,
                    "total": batch.total_batches,
                    "tickets": [ticket.to_dict() for ticket in batch.tickets],
                },
            )

        result = await self.generator.generate(
            state.requirements, ctx.tracker, state.answers, on_batch=on_batch
        )
        total = len(result.tickets)
        for index, ticket in enumerate(result.tickets):
            ctx.events.emit(
                PROGRESS,
                f"Generated ticket {index + 1}/{total}: {ticket.title}",
                {"ticket": ticket.to_dict(), "index": index, "total": total},
            )
        ctx.events.emit(PROGRESS, f"All {total} ticket(s) generated", {"ticketCount": total})
        return {
            "tickets": result.tickets,
            "justification": result.justification,
            "cost": ctx.current_cost(),
        }

    async def _validate_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Validating tickets...")
        if state.failed or state.requirements is None or not state.tickets:
            logger.info("Nothing to validate")
            return {}
        result = await self.validator.validate(state.tickets, state.requirements, ctx.tracker)
        report = result.value
        if not result.ok:
            ctx.events.emit(
                PROGRESS, "Ticket validation unavailable, continuing", {"reason": str(result.failure)}
            )
        elif not report.valid and report.issues:
            for issue in report.issues:
                logger.warning("  - %s: %s", issue.type, issue.description)
            ctx.events.emit(
                PROGRESS,
                f"Found {len(report.issues)} validation issue(s)",
                {"issues": [issue.to_dict() for issue in report.issues]},
            )
        else:
            ctx.events.emit(PROGRESS, "All tickets validated successfully")
        return {"validation": report, "cost": ctx.current_cost()}

    async def _persist_node(self, state: WorkflowState, ctx: RunContext) -> Delta:
        ctx.events.emit(STATUS, "Persisting project...")
        project_id = state.project_id or str(uuid.uuid4())
        now = utc_iso()
        created_at = state.created_at or now
        cost = ctx.current_cost()
        project = ProjectState(
            id=project_id,
            raw_text=state.raw_text,
            requirements=state.requirements,
            tickets=state.tickets,
            cost=cost,
            created_at=created_at,
            updated_at=now,
            clarifications=state.clarifications,
            answers=state.answers,
            justification=state.justification,
        )
        self.store.persist(project)
        ctx.events.emit(PROGRESS, f"Project saved: {project_id}", {"projectId": project_id})
        return {"project_id": project_id, "created_at": created_at, "updated_at": now, "cost": cost}
