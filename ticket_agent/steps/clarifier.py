from __future__ import annotations

from typing import Iterable, List

from ticket_agent.models import Requirements

MAX_QUESTIONS = 3

BUDGET_QUESTION = (
    "What is the project budget or cost constraint? "
    "(e.g. $X/month for hosting, $Y total budget)"
)
TIMELINE_QUESTION = (
    "What is the target deadline or timeline for this project? "
    "(e.g. launch in 6 weeks, MVP in 3 months)"
)
SCALE_QUESTION = (
    "What user scale or traffic do you expect? "
    "(e.g. 100 users, 10K daily active users, 1M visits/month)"
)
TEAM_QUESTION = (
    "What is the team composition and experience level? "
    "(e.g. 2 full-stack developers, 1 designer, junior team)"
)


def _any_mentions(texts: Iterable[str], keywords: Iterable[str]) -> bool:
    keywords = tuple(keywords)
    return any(keyword in text.lower() for text in texts for keyword in keywords)


def clarify(requirements: Requirements) -> List[str]:
    """Return up to three questions for planning signals the brief leaves out.

    Order is budget, timeline, scale, team; the team question is the first
    to be dropped when everything is missing.
    """
    constraints = requirements.constraints
    scope = [requirements.scope] if requirements.scope else []

    has_budget = _any_mentions(constraints, ("budget", "cost", "$"))
    has_timeline = _any_mentions(constraints, ("deadline", "timeline", "week", "month"))
    has_team = _any_mentions(constraints, ("team", "developer", "resource")) or _any_mentions(
        requirements.stakeholders, ("team", "developer")
    )
    has_scale = _any_mentions(constraints, ("user", "traffic", "scale", "concurrent")) or _any_mentions(
        scope, ("user", "scale")
    )

    questions: List[str] = []
    for present, question in (
        (has_budget, BUDGET_QUESTION),
        (has_timeline, TIMELINE_QUESTION),
        (has_scale, SCALE_QUESTION),
        (has_team, TEAM_QUESTION),
    ):
        if not present:
            questions.append(question)
    return questions[:MAX_QUESTIONS]
