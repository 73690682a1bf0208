from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ticket_agent.adapters.llm_base import LLMAdapter, LLMOptions, complete_async
from ticket_agent.config import load_prompt
from ticket_agent.cost import CostTracker
from ticket_agent.errors import RequirementsValidationError
from ticket_agent.gates.parsers import parse_payload
from ticket_agent.models import Requirements

logger = logging.getLogger(__name__)

SOFTWARE_KEYWORDS = (
    "app", "application", "system", "platform", "web", "website", "site",
    "api", "database", "user", "login", "authentication", "frontend",
    "backend", "interface", "dashboard", "mobile", "software", "code",
    "develop", "page", "form", "server", "cloud", "service", "integration",
    "module",
)

COMMERCE_KEYWORDS = (
    "buy", "sell", "rent", "hire", "investment", "real estate", "property",
    "purchase", "lease",
)

SHORT_INPUT_CHARS = 200


def _mentions(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def plausibility_problems(requirements: Requirements, original_text: str) -> List[str]:
    problems: List[str] = []
    if not requirements.features:
        problems.append("No software features or capabilities were found.")
    if not requirements.goals:
        problems.append("No project goals were found.")

    extracted = " ".join(
        [
            requirements.project_name,
            requirements.summary,
            *requirements.goals,
            *requirements.features,
            *requirements.stakeholders,
        ]
    )
    if not _mentions(extracted, SOFTWARE_KEYWORDS):
        problems.append("The content does not appear to describe a software project or application.")

    if (
        len(original_text) < SHORT_INPUT_CHARS
        and _mentions(original_text, COMMERCE_KEYWORDS)
        and not _mentions(original_text, SOFTWARE_KEYWORDS)
    ):
        problems.append(
            "The text reads like a purchase or transaction, not a software development project."
        )
    return problems


class RequirementsExtractor:
    def __init__(self, adapter: LLMAdapter, options: Optional[LLMOptions] = None) -> None:
        self.adapter = adapter
        self.options = options or LLMOptions(temperature=0.1)
        self.system_prompt = load_prompt("extract_requirements")

    async def extract(self, text: str, tracker: CostTracker) -> Requirements:
        response = await complete_async(
            self.adapter,
            self.system_prompt,
            f"Extract requirements from this document:\n\n{text}",
            self.options,
        )
        tracker.track(response.tokens_in, response.tokens_out)

        payload = parse_payload(response.raw_text, "requirements.schema.json", "requirements")
        requirements = Requirements.from_dict(payload)

        problems = plausibility_problems(requirements, text)
        if problems:
            logger.error("Rejected non-software input: %s", "; ".join(problems))
            raise RequirementsValidationError(problems)
        return requirements
