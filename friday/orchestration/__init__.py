"""
Orchestration Package

The request pipeline, leaves first:
- Capability registry and stock agent catalog
- Rule-based intent classification
- Fixed-shape planning against the registry
- Compliance and rate-limit guardrails
- Sequential step execution over connectors
- The orchestrator that composes them
"""

from .classifier import IntentClassifier, IntentRule
from .enums import AuditAction, RequestStage
from .exceptions import (
    AgentNotFoundError,
    ComplianceFailure,
    InputError,
    NoCapableAgentError,
    OrchestrationError,
    PlanningError,
    StepExecutionError,
    UnmappedIntentError,
)
from .executor import Executor
from .guardrails import ComplianceEngine
from .orchestrator import Orchestrator
from .planner import ACTION_TABLE, Planner
from .registry import CapabilityRegistry, default_agents

__all__ = [
    "ACTION_TABLE",
    "AgentNotFoundError",
    "AuditAction",
    "CapabilityRegistry",
    "ComplianceEngine",
    "ComplianceFailure",
    "Executor",
    "InputError",
    "IntentClassifier",
    "IntentRule",
    "NoCapableAgentError",
    "OrchestrationError",
    "Orchestrator",
    "PlanningError",
    "RequestStage",
    "StepExecutionError",
    "UnmappedIntentError",
    "default_agents",
]
