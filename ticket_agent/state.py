"""Workflow state threaded through the pipeline nodes.

Each node gets the full state and returns a delta: a dict holding only the
fields it changed. ``merge`` applies a delta with one rule per field:

- ``replace``: a provided, non-None value overwrites the old one. Lists and
  mappings are replaced wholesale, never appended.
- ``first``: the first non-None value sticks. Used for ``error`` so a later
  node cannot clear or mask the failure that stopped the run.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from ticket_agent.errors import TicketAgentError
from ticket_agent.models import Cost, Justification, Requirements, Ticket, ValidationReport


@dataclass
class WorkflowState:
    raw_text: str = ""
    project_id: Optional[str] = None
    file_size: Optional[int] = None
    requirements: Optional[Requirements] = None
    clarifications: List[str] = field(default_factory=list)
    answers: Dict[str, str] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)
    tickets: List[Ticket] = field(default_factory=list)
    justification: Optional[Justification] = None
    validation: Optional[ValidationReport] = None
    cost: Cost = field(default_factory=Cost)
    error: Optional[TicketAgentError] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


MERGE_RULES: Dict[str, str] = {item.name: "replace" for item in fields(WorkflowState)}
MERGE_RULES["error"] = "first"


def merge(state: WorkflowState, delta: Dict[str, Any]) -> WorkflowState:
    unknown = set(delta) - set(MERGE_RULES)
    if unknown:
        raise ValueError(f"Unknown workflow state fields: {', '.join(sorted(unknown))}")
    changes: Dict[str, Any] = {}
    for name, value in delta.items():
        if value is None:
            continue
        if MERGE_RULES[name] == "first" and getattr(state, name) is not None:
            continue
        changes[name] = value
    return replace(state, **changes) if changes else state
