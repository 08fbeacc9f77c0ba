from __future__ import annotations

from enum import Enum


class RequestStage(str, Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    PLANNED = "planned"
    COMPLIANCE_CHECKED = "compliance_checked"
    EXECUTED = "executed"
    REJECTED = "rejected"
    RECORDED = "recorded"
    DONE = "done"
    FAILED = "failed"


class AuditAction(str, Enum):
    COMPLIANCE_CHECK = "compliance-check"
    ORCHESTRATOR_EXECUTION = "orchestrator-execution"


__all__ = ["AuditAction", "RequestStage"]
