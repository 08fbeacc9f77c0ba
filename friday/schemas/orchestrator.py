from __future__ import annotations

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .agents import Agent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FrozenDict(dict):
    """Read-only dict; mutation raises ``TypeError``."""

    def _readonly(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = __delitem__ = _readonly
    clear = pop = popitem = setdefault = update = _readonly
    __ior__ = _readonly

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (dict(self),))

    def __deepcopy__(self, memo: dict[int, Any]) -> "FrozenDict":
        return type(self)(copy.deepcopy(dict(self), memo))


class Intent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1, description="Dotted intent namespace, e.g. 'schedule.view'.")
    confidence: float = Field(..., ge=0.0, le=1.0)
    entities: dict[str, Any] = Field(default_factory=dict, validate_default=True)
    raw_utterance: str = ""

    @field_validator("entities", mode="after")
    @classmethod
    def _freeze_entities(cls, value: dict[str, Any]) -> FrozenDict:
        return FrozenDict(value)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionStep(BaseModel):
    id: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)
    bound_agent_ref: str | None = None
    status: StepStatus = StepStatus.PENDING
    result: Any = None
    error: str | None = None


class ExecutionPlan(BaseModel):
    id: str = Field(default_factory=lambda: f"plan-{uuid4().hex[:12]}")
    intent: Intent
    selected_agent: Agent
    steps: list[ExecutionStep] = Field(default_factory=list)
    estimated_duration_ms: int = Field(0, ge=0)

    def get_step(self, step_id: str) -> ExecutionStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class ComplianceCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    passed: bool
    violations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    audit_record_id: str | None = None

    @model_validator(mode="after")
    def _passed_matches_violations(self) -> "ComplianceCheck":
        if self.passed != (not self.violations):
            raise ValueError("passed must be true exactly when there are no violations")
        return self


class AuditRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    caller_id: str
    action: str
    success: bool
    detail: dict[str, Any] = Field(default_factory=dict)


class CallerProfile(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    job_title: str | None = None
    department: str | None = None


class ConversationEntry(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    role: Literal["user", "assistant", "system"]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CallerContext(BaseModel):
    caller_id: str
    profile: CallerProfile
    recent_activity: list[str] = Field(default_factory=list, description="Newest entry first.")
    preferences: dict[str, Any] = Field(default_factory=dict)
    session_id: str = Field(default_factory=lambda: f"session-{uuid4().hex}")
    history: list[ConversationEntry] = Field(default_factory=list, description="Oldest entry first.")


class OrchestratorResponse(BaseModel):
    request_id: str
    intent: Intent
    plan: ExecutionPlan
    result: Any = None
    compliance: ComplianceCheck
    execution_time_ms: float = Field(0.0, ge=0.0)


__all__ = [
    "AuditRecord",
    "CallerContext",
    "CallerProfile",
    "ComplianceCheck",
    "ConversationEntry",
    "ExecutionPlan",
    "ExecutionStep",
    "Intent",
    "OrchestratorResponse",
    "StepStatus",
]
