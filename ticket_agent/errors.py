from __future__ import annotations

from typing import List


class TicketAgentError(Exception):
    """Base class for every failure a pipeline step can report."""


class ConfigError(TicketAgentError):
    pass


class FatalInputError(TicketAgentError):
    """Input rejected before any model call; no cost is incurred."""


class UnsupportedFormat(FatalInputError):
    pass


class ParseError(TicketAgentError):
    """Model output was not JSON or did not match the expected schema."""


class GenerationError(ParseError):
    pass


class EditError(ParseError):
    pass


class RequirementsValidationError(TicketAgentError):
    def __init__(self, reasons: List[str]) -> None:
        self.reasons = list(reasons)
        bullet_list = "\n".join(f"- {reason}" for reason in self.reasons)
        super().__init__(
            "This does not look like a software project:\n"
            f"{bullet_list}\n"
            "Please describe an application, platform or system you need built."
        )


class StoreError(TicketAgentError):
    """A project id or stored document the store cannot use."""


class ProjectNotFound(TicketAgentError):
    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class BestEffortFailure(TicketAgentError):
    """Failure of an advisory step. Returned inside a result, never raised."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")
