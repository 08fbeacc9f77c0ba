from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

INTENT_CLASSIFICATIONS_TOTAL = Counter(
    "friday_intent_classifications_total",
    "Utterances classified, grouped by resulting intent type",
    labelnames=("intent_type",),
)

PLANNER_OUTCOMES_TOTAL = Counter(
    "friday_planner_plan_total",
    "Count of planner outcomes grouped by status",
    labelnames=("status",),
)

GUARDRAIL_DECISIONS_TOTAL = Counter(
    "friday_guardrail_decisions_total",
    "Compliance evaluations by outcome",
    labelnames=("decision",),
)

GUARDRAIL_FINDINGS_TOTAL = Counter(
    "friday_guardrail_findings_total",
    "Warnings and violations raised by each policy",
    labelnames=("policy", "severity"),
)

EXECUTOR_STEPS_TOTAL = Counter(
    "friday_executor_steps_total",
    "Executed plan steps by action and outcome",
    labelnames=("action", "outcome"),
)

EXECUTOR_STEP_LATENCY_SECONDS = Histogram(
    "friday_executor_step_latency_seconds",
    "Latency of individual plan steps",
    labelnames=("action",),
)

CONNECTOR_REQUEST_TOTAL = Counter(
    "friday_connector_request_total",
    "Connector calls by connector and outcome",
    labelnames=("connector", "outcome"),
)

ORCHESTRATOR_RUNS_TOTAL = Counter(
    "friday_orchestrator_runs_total",
    "Total orchestrator runs by final status",
    labelnames=("status",),
)

ORCHESTRATOR_RUN_LATENCY_SECONDS = Histogram(
    "friday_orchestrator_run_latency_seconds",
    "End-to-end orchestrator runtime",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, float("inf")),
)

ORCHESTRATOR_ACTIVE_GAUGE = Gauge(
    "friday_orchestrator_runs_active",
    "Active orchestrator runs in flight",
)

AUDIT_RECORDS_TOTAL = Counter(
    "friday_audit_records_total",
    "Audit records appended by action and outcome",
    labelnames=("action", "success"),
)


def increment_intent_classification(*, intent_type: str) -> None:
    INTENT_CLASSIFICATIONS_TOTAL.labels(intent_type=intent_type).inc()


def increment_planner_outcome(*, status: str) -> None:
    PLANNER_OUTCOMES_TOTAL.labels(status=status).inc()


def increment_guardrail_decision(*, decision: str) -> None:
    GUARDRAIL_DECISIONS_TOTAL.labels(decision=decision).inc()


def increment_guardrail_finding(*, policy: str, severity: str) -> None:
    GUARDRAIL_FINDINGS_TOTAL.labels(policy=policy, severity=severity).inc()


def observe_executor_step(*, action: str, outcome: str, latency: float) -> None:
    EXECUTOR_STEPS_TOTAL.labels(action=action, outcome=outcome).inc()
    EXECUTOR_STEP_LATENCY_SECONDS.labels(action=action).observe(latency)


def increment_connector_request(*, connector: str, outcome: str) -> None:
    CONNECTOR_REQUEST_TOTAL.labels(connector=connector, outcome=outcome).inc()


def mark_orchestrator_run_started() -> None:
    ORCHESTRATOR_ACTIVE_GAUGE.inc()


def mark_orchestrator_run_finished(*, status: str, latency: float) -> None:
    ORCHESTRATOR_ACTIVE_GAUGE.dec()
    ORCHESTRATOR_RUNS_TOTAL.labels(status=status).inc()
    ORCHESTRATOR_RUN_LATENCY_SECONDS.observe(latency)


def increment_audit_record(*, action: str, success: bool) -> None:
    AUDIT_RECORDS_TOTAL.labels(action=action, success=str(success).lower()).inc()
