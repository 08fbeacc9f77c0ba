from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..connectors.base import ConnectorError, ConnectorNotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from ..schemas.orchestrator import OrchestratorResponse

RATE_LIMIT_EXCEEDED = "Rate limit exceeded: Maximum {capacity} requests per {window}"


def rate_limit_violation(capacity: int, window_seconds: int) -> str:
    """Human-readable rate-limit violation ("... per 5 minutes" for whole minutes)."""
    if window_seconds % 60 == 0:
        minutes = window_seconds // 60
        window = f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    else:
        window = f"{window_seconds} seconds"
    return RATE_LIMIT_EXCEEDED.format(capacity=capacity, window=window)


class OrchestrationError(RuntimeError):
    """Base class for failures surfaced by the orchestration pipeline."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(OrchestrationError):
    """Raised when the utterance or access token is missing."""

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field


class PlanningError(OrchestrationError):
    """Raised when no execution plan can be produced for an intent."""

    def __init__(self, message: str, *, intent_type: str) -> None:
        super().__init__(message)
        self.intent_type = intent_type


class NoCapableAgentError(PlanningError):
    """Raised when the registry has no agent supporting the intent type."""


class UnmappedIntentError(PlanningError):
    """Raised when the intent type has no entry in the action table."""


class AgentNotFoundError(OrchestrationError):
    """Raised when an agent id is not registered."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class ComplianceFailure(OrchestrationError):
    """Raised when the compliance check reports violations; carries the rejected response."""

    def __init__(self, violations: Sequence[str], response: "OrchestratorResponse | None" = None) -> None:
        self.violations = list(violations)
        super().__init__(f"Compliance check failed: {', '.join(self.violations)}")
        self.response = response


class StepExecutionError(OrchestrationError):
    """Raised when a plan step fails; later steps are left pending."""

    def __init__(self, step_id: str, cause: BaseException | str) -> None:
        if isinstance(cause, BaseException):
            reason = str(cause) or type(cause).__name__
        else:
            reason = cause
        super().__init__(f"Step {step_id} failed: {reason}")
        self.step_id = step_id
        self.cause = cause
        self.reason = reason


__all__ = [
    "AgentNotFoundError",
    "ComplianceFailure",
    "ConnectorError",
    "ConnectorNotFoundError",
    "InputError",
    "NoCapableAgentError",
    "OrchestrationError",
    "PlanningError",
    "RATE_LIMIT_EXCEEDED",
    "StepExecutionError",
    "UnmappedIntentError",
    "rate_limit_violation",
]
