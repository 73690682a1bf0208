from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Generic, List, Optional, TypeVar

from ticket_agent.errors import BestEffortFailure

EFFORT_POINTS = (1, 2, 3, 5, 8, 13)
PRIORITIES = ("P1", "P2", "P3")

T = TypeVar("T")


@dataclass
class Requirements:
    project_name: str
    summary: str
    goals: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    stakeholders: List[str] = field(default_factory=list)
    tech_hints: Optional[List[str]] = None
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict) -> "Requirements":
        return cls(
            project_name=payload["projectName"],
            summary=payload["summary"],
            goals=list(payload.get("goals", [])),
            constraints=list(payload.get("constraints", [])),
            features=list(payload.get("features", [])),
            stakeholders=list(payload.get("stakeholders", [])),
            tech_hints=list(payload["techHints"]) if payload.get("techHints") is not None else None,
            scope=payload.get("scope"),
        )

    def to_dict(self) -> Dict:
        payload: Dict = {
            "projectName": self.project_name,
            "summary": self.summary,
            "goals": list(self.goals),
            "constraints": list(self.constraints),
            "features": list(self.features),
            "stakeholders": list(self.stakeholders),
        }
        if self.tech_hints is not None:
            payload["techHints"] = list(self.tech_hints)
        if self.scope is not None:
            payload["scope"] = self.scope
        return payload


@dataclass
class Ticket:
    id: str
    title: str
    description: str
    acceptance_criteria: List[str]
    effort_points: int
    use_case: str
    priority: str
    labels: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict) -> "Ticket":
        # Models sometimes quote the estimate ("5"); the schema allows both.
        effort = int(payload["effortPoints"])
        if effort not in EFFORT_POINTS:
            raise ValueError(f"effortPoints must be one of {EFFORT_POINTS}, got {effort}")
        return cls(
            id=str(payload["id"]),
            title=payload["title"],
            description=payload["description"],
            acceptance_criteria=list(payload["acceptanceCriteria"]),
            effort_points=effort,
            use_case=payload["useCase"],
            priority=payload["priority"],
            labels=list(payload.get("labels", [])),
            dependencies=[str(item) for item in payload.get("dependencies", [])],
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "acceptanceCriteria": list(self.acceptance_criteria),
            "effortPoints": self.effort_points,
            "useCase": self.use_case,
            "priority": self.priority,
            "labels": list(self.labels),
            "dependencies": list(self.dependencies),
        }


@dataclass
class Justification:
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict) -> "Justification":
        return cls(
            pros=list(payload.get("pros", [])),
            cons=list(payload.get("cons", [])),
            alternatives=list(payload.get("alternatives", [])),
        )

    def to_dict(self) -> Dict:
        return {
            "pros": list(self.pros),
            "cons": list(self.cons),
            "alternatives": list(self.alternatives),
        }


@dataclass
class Cost:
    tokens_in: int = 0
    tokens_out: int = 0
    usd: float = 0.0

    def add(self, other: "Cost") -> "Cost":
        return Cost(
            tokens_in=self.tokens_in + other.tokens_in,
            tokens_out=self.tokens_out + other.tokens_out,
            usd=self.usd + other.usd,
        )

    @classmethod
    def from_dict(cls, payload: Dict) -> "Cost":
        return cls(
            tokens_in=int(payload.get("tokensIn", 0)),
            tokens_out=int(payload.get("tokensOut", 0)),
            usd=float(payload.get("usd", 0.0)),
        )

    def to_dict(self) -> Dict:
        return {"tokensIn": self.tokens_in, "tokensOut": self.tokens_out, "usd": self.usd}


@dataclass
class ValidationIssue:
    type: str
    description: str
    suggested_fix: str = ""
    ticket_id: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict) -> "ValidationIssue":
        return cls(
            type=payload["type"],
            description=payload["description"],
            suggested_fix=payload.get("suggestedFix") or "",
            ticket_id=payload.get("ticketId"),
        )

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "ticketId": self.ticket_id,
            "description": self.description,
            "suggestedFix": self.suggested_fix,
        }


@dataclass
class ValidationReport:
    valid: bool = True
    issues: List[ValidationIssue] = field(default_factory=list)


@dataclass
class ProjectState:
    id: str
    raw_text: str
    requirements: Requirements
    tickets: List[Ticket]
    cost: Cost
    created_at: str
    updated_at: str
    clarifications: List[str] = field(default_factory=list)
    answers: Dict[str, str] = field(default_factory=dict)
    justification: Optional[Justification] = None

    @classmethod
    def from_dict(cls, payload: Dict) -> "ProjectState":
        justification = payload.get("justification")
        return cls(
            id=payload["id"],
            raw_text=payload["rawText"],
            requirements=Requirements.from_dict(payload["requirements"]),
            tickets=[Ticket.from_dict(item) for item in payload.get("tickets", [])],
            cost=Cost.from_dict(payload.get("cost", {})),
            created_at=payload["createdAt"],
            updated_at=payload["updatedAt"],
            clarifications=list(payload.get("clarifications", [])),
            answers=dict(payload.get("answers", {})),
            justification=Justification.from_dict(justification) if justification else None,
        )

    def to_dict(self) -> Dict:
        # Every key is always written so stored documents share one shape.
        return {
            "id": self.id,
            "rawText": self.raw_text,
            "requirements": self.requirements.to_dict(),
            "clarifications": list(self.clarifications),
            "answers": dict(self.answers),
            "tickets": [ticket.to_dict() for ticket in self.tickets],
            "justification": self.justification.to_dict() if self.justification else None,
            "cost": self.cost.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class BestEffortResult(Generic[T]):
    """Outcome of an advisory step: a usable value plus the failure, if any."""

    value: T
    failure: Optional[BestEffortFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None
