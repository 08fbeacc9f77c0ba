from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from ..connectors.registry import normalize_connector_name
from ..core import metrics
from ..core.config import GuardrailSettings
from ..core.logging import get_logger
from ..schemas.orchestrator import ComplianceCheck, ExecutionPlan, Intent
from ..services.audit import AuditStore
from .enums import AuditAction
from .exceptions import AgentNotFoundError, rate_limit_violation
from .registry import CapabilityRegistry

logger = get_logger(name=__name__)

TimestampFactory = Callable[[], datetime]
Severity = Literal["warning", "violation"]

PRIVACY_ENTITIES = ("person", "email")


@dataclass(slots=True)
class PolicyFinding:
    policy: str
    severity: Severity
    message: str


@dataclass(slots=True)
class PolicyReport:
    findings: list[PolicyFinding] = field(default_factory=list)

    def warn(self, policy: str, message: str) -> None:
        self.findings.append(PolicyFinding(policy=policy, severity="warning", message=message))

    def violate(self, policy: str, message: str) -> None:
        self.findings.append(PolicyFinding(policy=policy, severity="violation", message=message))

    @property
    def warnings(self) -> list[str]:
        return [finding.message for finding in self.findings if finding.severity == "warning"]

    @property
    def violations(self) -> list[str]:
        return [finding.message for finding in self.findings if finding.severity == "violation"]


class ComplianceEngine:
    """Evaluates an intent and plan against data-access, sensitive-operation and rate-limit policy.

    Warnings never block a request; only violations fail the check. Every
    evaluation appends exactly one ``compliance-check`` audit record, and the
    rate-limit window is derived from those records.
    """

    def __init__(
        self,
        audit_store: AuditStore,
        registry: CapabilityRegistry,
        *,
        settings: GuardrailSettings | None = None,
        now: TimestampFactory | None = None,
    ) -> None:
        self._audit = audit_store
        self._registry = registry
        self._settings = settings or GuardrailSettings()
        self._now: TimestampFactory = now or (lambda: datetime.now(timezone.utc))
        self._restricted = frozenset(self._settings.restricted_intents)
        self._financial = frozenset(self._settings.financial_actions)
        self._external = frozenset(normalize_connector_name(name) for name in self._settings.external_connectors)

    async def evaluate(self, intent: Intent, plan: ExecutionPlan, caller_id: str) -> ComplianceCheck:
        report = PolicyReport()
        if self._settings.enabled:
            self._check_data_access(intent, report)
            self._check_sensitive_operations(plan, report)
            await self._check_rate_limit(caller_id, report)

        violations = report.violations
        warnings = report.warnings
        passed = not violations
        record = await self._audit.append(
            caller_id,
            AuditAction.COMPLIANCE_CHECK.value,
            passed,
            {
                "intent_type": intent.type,
                "plan_id": plan.id,
                "violations": violations,
                "warnings": warnings,
            },
        )

        decision = "allow" if passed else "deny"
        metrics.increment_guardrail_decision(decision=decision)
        for finding in report.findings:
            metrics.increment_guardrail_finding(policy=finding.policy, severity=finding.severity)
        log = logger.info if passed else logger.warning
        log(
            "compliance_evaluated",
            caller_id=caller_id,
            intent_type=intent.type,
            decision=decision,
            violations=violations,
            warnings=warnings,
            audit_id=record.id,
        )
        return ComplianceCheck(
            passed=passed,
            violations=violations,
            warnings=warnings,
            audit_record_id=record.id,
        )

    def _check_data_access(self, intent: Intent, report: PolicyReport) -> None:
        if intent.type in self._restricted:
            report.warn("data_access", f"Intent {intent.type} requires manager role verification")
        found = [name for name in PRIVACY_ENTITIES if intent.entities.get(name)]
        if found:
            report.warn(
                "privacy",
                f"Request references personal data ({', '.join(found)}); GDPR handling applies",
            )

    def _check_sensitive_operations(self, plan: ExecutionPlan, report: PolicyReport) -> None:
        for step in plan.steps:
            if step.action in self._financial:
                report.warn("sensitive_operation", f"Action {step.action} involves financial data")
            if step.bound_agent_ref is None:
                continue
            endpoint = self._endpoint_for(plan, step.bound_agent_ref)
            if endpoint is not None and normalize_connector_name(endpoint) in self._external:
                report.warn("external_system", f"Step {step.id} calls external system {endpoint}")

    def _endpoint_for(self, plan: ExecutionPlan, agent_id: str) -> str | None:
        if plan.selected_agent.id == agent_id:
            return plan.selected_agent.endpoint_ref
        try:
            return self._registry.get(agent_id).endpoint_ref
        except AgentNotFoundError:
            logger.warning("compliance_unknown_agent", agent_id=agent_id, plan_id=plan.id)
            return None

    async def _check_rate_limit(self, caller_id: str, report: PolicyReport) -> None:
        rule = self._settings.rate_limit
        since = self._now() - timedelta(seconds=rule.window_seconds)
        recent = await self._audit.count_since(caller_id, AuditAction.COMPLIANCE_CHECK.value, since)
        if recent + 1 > rule.capacity:
            report.violate("rate_limit", rate_limit_violation(rule.capacity, rule.window_seconds))


__all__ = ["ComplianceEngine", "PolicyFinding", "PolicyReport"]
