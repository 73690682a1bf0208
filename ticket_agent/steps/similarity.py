from __future__ import annotations

import logging
from typing import List

from ticket_agent.errors import BestEffortFailure
from ticket_agent.models import BestEffortResult
from ticket_agent.storage import ProjectStore

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 5
MAX_SUGGESTIONS = 2
MIN_WORD_LENGTH = 5
MIN_SHARED_WORDS = 3


def search_similar(store: ProjectStore, summary: str) -> BestEffortResult[List[str]]:
    """Keyword overlap against a handful of stored projects. Advisory only."""
    try:
        query_words = [
            word for word in summary.lower().split() if len(word) >= MIN_WORD_LENGTH
        ]
        suggestions: List[str] = []
        for project in store.iter_projects(limit=MAX_CANDIDATES):
            requirements = project.requirements
            project_text = f"{requirements.summary} {' '.join(requirements.features)}".lower()
            shared = [word for word in query_words if word in project_text]
            if len(shared) >= MIN_SHARED_WORDS:
                suggestions.append(
                    f'Similar project "{requirements.project_name}" had {len(project.tickets)} '
                    f"tickets covering: {', '.join(requirements.features[:3])}"
                )
        return BestEffortResult(value=suggestions[:MAX_SUGGESTIONS])
    except Exception as exc:  # noqa: BLE001 - similarity must never fail the run
        logger.warning("Similarity search failed: %s", exc)
        return BestEffortResult(value=[], failure=BestEffortFailure("similarity", str(exc)))
