from __future__ import annotations

from pydantic import BaseModel, Field


class AgentCapability(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    required_scopes: set[str] = Field(default_factory=set)
    supported_intent_types: set[str] = Field(default_factory=set)


class Agent(BaseModel):
    """A capability provider bound to an external connector through ``endpoint_ref``."""

    id: str = Field(..., min_length=1)
    display_name: str
    endpoint_ref: str = Field(..., min_length=1, description="Opaque handle of the connector that serves this agent.")
    capabilities: list[AgentCapability] = Field(default_factory=list)

    def supports(self, intent_type: str) -> bool:
        return any(intent_type in capability.supported_intent_types for capability in self.capabilities)

    @property
    def required_scopes(self) -> set[str]:
        scopes: set[str] = set()
        for capability in self.capabilities:
            scopes.update(capability.required_scopes)
        return scopes


__all__ = ["Agent", "AgentCapability"]
