from .agents import Agent, AgentCapability
from .orchestrator import (
    AuditRecord,
    CallerContext,
    CallerProfile,
    ComplianceCheck,
    ConversationEntry,
    ExecutionPlan,
    ExecutionStep,
    Intent,
    OrchestratorResponse,
    StepStatus,
)

__all__ = [
    "Agent",
    "AgentCapability",
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
