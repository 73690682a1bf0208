from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from ticket_agent.adapters.llm_base import LLMAdapter, LLMOptions, complete_async
from ticket_agent.config import load_prompt
from ticket_agent.cost import CostTracker
from ticket_agent.errors import GenerationError
from ticket_agent.gates.parsers import parse_payload
from ticket_agent.models import Justification, Requirements, Ticket

logger = logging.getLogger(__name__)

FEATURES_PER_BATCH = 3
RULE = "=" * 80


@dataclass
class GenerationResult:
    tickets: List[Ticket] = field(default_factory=list)
    justification: Optional[Justification] = None


@dataclass
class BatchResult:
    batch_number: int
    total_batches: int
    features: List[str]
    tickets: List[Ticket]


BatchCallback = Callable[[BatchResult], Awaitable[None]]


def split_batches(features: List[str], size: int = FEATURES_PER_BATCH) -> List[List[str]]:
    return [features[start:start + size] for start in range(0, len(features), size)]


def batch_count(feature_count: int, size: int = FEATURES_PER_BATCH) -> int:
    return math.ceil(feature_count / size)


def minimum_tickets(feature_count: int) -> int:
    return max(feature_count * 3, 5)


def build_batch_prompt(
    requirements: Requirements,
    features: List[str],
    batch_number: int,
    total_batches: int,
    answers: Optional[Dict[str, str]] = None,
) -> str:
    lines = [
        f"Generate development tickets for BATCH {batch_number} of {total_batches} of this project.",
        "",
        f"Project: {requirements.project_name}",
        f"Summary: {requirements.summary}",
        "",
        "Overall Goals:",
        *[f"- {goal}" for goal in requirements.goals],
        "",
        "Constraints:",
        *[f"- {constraint}" for constraint in requirements.constraints],
        "",
        RULE,
        f"FEATURES FOR THIS BATCH ({len(features)} features):",
        *[f"{index}. {feature}" for index, feature in enumerate(features, start=1)],
        RULE,
        "",
        "Stakeholders:",
        *[f"- {stakeholder}" for stakeholder in requirements.stakeholders],
        "",
    ]
    if requirements.tech_hints:
        lines.extend(["Tech Hints:", *[f"- {hint}" for hint in requirements.tech_hints], ""])
    if requirements.scope:
        lines.extend([f"Scope: {requirements.scope}", ""])
    if answers:
        lines.append("Additional Clarifications:")
        for question, answer in answers.items():
            lines.extend([f"Q: {question}", f"A: {answer}", ""])

    prefix = f"TICKET-{batch_number:02d}"
    lines.extend(
        [
            RULE,
            "INSTRUCTIONS FOR THIS BATCH:",
            f"- You are processing {len(features)} features (batch {batch_number}/{total_batches})",
            f"- Generate AT LEAST {minimum_tickets(len(features))} tickets for these features",
            f"- Aim for {len(features) * 6}+ tickets for comprehensive coverage",
            "- Break EACH feature into multiple tickets (backend, frontend, testing, etc.)",
        ]
    )
    if batch_number == 1:
        lines.append("- Include initial setup/infrastructure tickets (this is the first batch)")
        lines.append("- Include a \"justification\" object with pros, cons and alternatives")
    lines.extend(
        [
            "- Include testing tickets (unit, integration, e2e) for these features",
            "- Include security and performance tickets where relevant",
            "- NO feature should result in just 1 ticket",
            f"- Use ticket IDs like {prefix}01, {prefix}02, etc.",
            RULE,
        ]
    )
    return "\n".join(lines)


class TicketGenerator:
    def __init__(
        self,
        adapter: LLMAdapter,
        options: Optional[LLMOptions] = None,
        features_per_batch: int = FEATURES_PER_BATCH,
    ) -> None:
        self.adapter = adapter
        self.options = options or LLMOptions(temperature=0.3, max_output_tokens=4096)
        self.features_per_batch = features_per_batch
        self.system_prompt = load_prompt("generate_tickets")

    async def generate_batch(
        self,
        requirements: Requirements,
        features: List[str],
        batch_number: int,
        total_batches: int,
        tracker: CostTracker,
        answers: Optional[Dict[str, str]] = None,
    ) -> GenerationResult:
        user_prompt = build_batch_prompt(requirements, features, batch_number, total_batches, answers)
        response = await complete_async(self.adapter, self.system_prompt, user_prompt, self.options)
        tracker.track(response.tokens_in, response.tokens_out)

        label = f"tickets for batch {batch_number}/{total_batches}"
        payload = parse_payload(response.raw_text, "ticket_batch.schema.json", label, GenerationError)
        try:
            tickets = [Ticket.from_dict(item) for item in payload["tickets"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise GenerationError(f"Failed to parse {label}: {exc}") from exc
        justification = payload.get("justification")
        return GenerationResult(
            tickets=tickets,
            justification=Justification.from_dict(justification) if justification else None,
        )

    async def generate(
        self,
        requirements: Requirements,
        tracker: CostTracker,
        answers: Optional[Dict[str, str]] = None,
        on_batch: Optional[BatchCallback] = None,
    ) -> GenerationResult:
        """Generate tickets one feature batch at a time.

        Batches run sequentially and any failure aborts the whole generation.
        Ticket ids must be unique across batches.
        """
        batches = split_batches(requirements.features, self.features_per_batch)
        total = len(batches)
        logger.info("Processing %s features in %s batch(es)", len(requirements.features), total)

        result = GenerationResult()
        for batch_number, features in enumerate(batches, start=1):
            try:
                batch = await self.generate_batch(
                    requirements, features, batch_number, total, tracker, answers
                )
            except GenerationError:
                logger.error("Batch %s/%s failed", batch_number, total)
                raise
            logger.info("Batch %s/%s: generated %s tickets", batch_number, total, len(batch.tickets))
            result.tickets.extend(batch.tickets)
            if result.justification is None and batch.justification is not None:
                result.justification = batch.justification
            if on_batch is not None:
                await on_batch(BatchResult(batch_number, total, features, batch.tickets))

        counts = Counter(ticket.id for ticket in result.tickets)
        duplicates = sorted(ticket_id for ticket_id, count in counts.items() if count > 1)
        if duplicates:
            raise GenerationError(f"Duplicate ticket ids across batches: {', '.join(duplicates)}")
        logger.info("Total tickets generated: %s", len(result.tickets))
        return result
