from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrchestrateRequest(BaseModel):
    utterance: str | None = Field(default=None, description="Free-text request from the caller.")
    caller_id: str | None = None
    access_token: str | None = Field(
        default=None,
        description="Fallback when no Authorization bearer header is sent; never decoded.",
    )
    context: dict[str, Any] | None = None


class SuccessEnvelope(BaseModel):
    success: Literal[True] = True
    data: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    kind: str = Field(..., description="Error class name, e.g. InputError or StepExecutionError.")
    error: str
    timestamp: datetime = Field(default_factory=_utcnow)
    violations: list[str] | None = None
    execution_time_ms: float | None = None
    step_id: str | None = None


__all__ = ["ErrorEnvelope", "OrchestrateRequest", "SuccessEnvelope"]
