from __future__ import annotations

import asyncio

import pytest
import structlog

from friday.connectors.registry import ConnectorRegistry
from friday.container import build_connectors, build_container
from friday.core.config import Settings
from friday.orchestration.exceptions import (
    ComplianceFailure,
    InputError,
    NoCapableAgentError,
    StepExecutionError,
)
from friday.schemas.orchestrator import StepStatus
from tests.helpers.stubs import FailingConnector, FrozenClock, RecordingConnector, SlowConnector


def _container(connectors: ConnectorRegistry | None = None, clock: FrozenClock | None = None):
    clock = clock or FrozenClock()
    return build_container(Settings(), connectors=connectors, now=clock)


def _capture_plans(container) -> list:
    planner = container.orchestrator.planner
    original = planner.create_plan
    plans = []

    def create_plan(intent):
        plan = original(intent)
        plans.append(plan)
        return plan

    planner.create_plan = create_plan
    return plans


@pytest.mark.asyncio
async def test_schedule_request_end_to_end() -> None:
    container = _container()

    response = await container.orchestrator.process("show my schedule", "user-1", "token-abc")

    assert response.intent.type == "schedule.view"
    assert response.intent.confidence >= 0.6
    assert len(response.plan.steps) == 3
    assert all(step.status is StepStatus.COMPLETED for step in response.plan.steps)
    assert response.compliance.passed is True
    assert response.result["format"] == "json"
    assert [event["title"] for event in response.result["data"]["events"]] == ["Team Standup", "Project Review"]
    assert response.execution_time_ms >= 0
    assert response.request_id.startswith("req-")

    context = await container.orchestrator.get_context("user-1")
    assert context.recent_activity == ["Executed: schedule.view", "Intent: schedule.view"]
    assert [entry.role for entry in context.history] == ["user", "assistant"]

    records = await container.orchestrator.get_audit_logs("user-1")
    assert [(record.action, record.success) for record in records] == [
        ("orchestrator-execution", True),
        ("compliance-check", True),
    ]
    assert records[1].id == response.compliance.audit_record_id


@pytest.mark.asyncio
async def test_approval_request_warns_but_executes() -> None:
    container = _container()

    response = await container.orchestrator.process("approve request", "manager-1", "token")

    assert response.intent.type in {"decision.make", "approval.process"}
    assert response.compliance.passed is True
    assert any("manager role verification" in warning for warning in response.compliance.warnings)
    assert response.result["data"]["status"] == "processed"


@pytest.mark.asyncio
async def test_rate_limited_caller_is_rejected_before_execution() -> None:
    clock = FrozenClock()
    container = _container(clock=clock)
    plans = _capture_plans(container)
    for _ in range(100):
        await container.audit.append("busy-user", "compliance-check", True)

    with pytest.raises(ComplianceFailure) as excinfo:
        await container.orchestrator.process("show my schedule", "busy-user", "token")

    failure = excinfo.value
    assert any("Rate limit exceeded" in violation for violation in failure.violations)
    assert failure.response is not None
    assert failure.response.compliance.passed is False
    assert failure.response.execution_time_ms >= 0
    assert all(step.status is StepStatus.PENDING for step in plans[0].steps)

    records = await container.orchestrator.get_audit_logs("busy-user", limit=5)
    assert records[0].action == "compliance-check"
    assert records[0].success is False
    assert all(record.action == "compliance-check" for record in records)
    context = await container.orchestrator.get_context("busy-user")
    assert "Executed: schedule.view" not in context.recent_activity


@pytest.mark.asyncio
async def test_connector_failure_surfaces_failing_step() -> None:
    settings = Settings()
    connectors = build_connectors(settings)
    connectors.register(FailingConnector("graph offline"), name="graph")
    container = _container(connectors)
    plans = _capture_plans(container)

    with pytest.raises(StepExecutionError) as excinfo:
        await container.orchestrator.process("show my schedule", "user-1", "token")

    assert excinfo.value.step_id == "step-2-execute"
    steps = plans[0].steps
    assert steps[0].status is StepStatus.COMPLETED
    assert steps[1].status is StepStatus.FAILED
    assert steps[1].error == "graph offline"
    assert steps[2].status is StepStatus.PENDING

    latest = (await container.orchestrator.get_audit_logs("user-1", limit=1))[0]
    assert latest.action == "orchestrator-execution"
    assert latest.success is False
    assert latest.detail["step_id"] == "step-2-execute"
    context = await container.orchestrator.get_context("user-1")
    assert context.recent_activity == ["Intent: schedule.view"]


@pytest.mark.asyncio
async def test_planning_failure_is_audited() -> None:
    container = _container()

    with pytest.raises(NoCapableAgentError):
        await container.orchestrator.process("hello there", "user-1", "token")

    records = await container.orchestrator.get_audit_logs("user-1")
    assert len(records) == 1
    assert records[0].action == "orchestrator-execution"
    assert records[0].success is False
    assert records[0].detail["error"] == "No agent available for intent: unknown"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("utterance", "token", "field"),
    [("   ", "token", "utterance"), ("show my schedule", "", "access_token")],
)
async def test_missing_input_is_audited(utterance: str, token: str, field: str) -> None:
    container = _container()

    with pytest.raises(InputError) as excinfo:
        await container.orchestrator.process(utterance, "user-1", token)

    assert excinfo.value.field == field
    records = await container.orchestrator.get_audit_logs("user-1")
    assert [(record.action, record.success) for record in records] == [("orchestrator-execution", False)]


@pytest.mark.asyncio
async def test_request_context_patches_caller_state() -> None:
    container = _container()

    await container.orchestrator.process(
        "show my schedule",
        "user-1",
        "token",
        {
            "profile": {"name": "Jane Smith", "email": "jane@example.com"},
            "preferences": {"theme": "dark"},
            "session_id": "session-fixed",
        },
    )

    context = await container.orchestrator.get_context("user-1")
    assert context.profile.name == "Jane Smith"
    assert context.preferences["theme"] == "dark"
    assert context.session_id == "session-fixed"


@pytest.mark.asyncio
async def test_cancelled_request_is_audited_then_reraised() -> None:
    settings = Settings()
    connectors = build_connectors(settings)
    slow = SlowConnector()
    connectors.register(slow, name="graph")
    container = _container(connectors)

    task = asyncio.create_task(container.orchestrator.process("show my schedule", "user-1", "token"))
    await asyncio.wait_for(slow.started.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    latest = (await container.orchestrator.get_audit_logs("user-1", limit=1))[0]
    assert latest.success is False
    assert latest.detail["error"] == "Request cancelled"


@pytest.mark.asyncio
async def test_clear_context_resets_caller() -> None:
    container = _container()
    await container.orchestrator.process("show my schedule", "user-1", "token")

    await container.orchestrator.clear_context("user-1")

    context = await container.orchestrator.get_context("user-1")
    assert context.recent_activity == []
    assert [agent.id for agent in await container.orchestrator.list_agents()][0] == "graph-calendar"


class ContextSnoopingConnector(RecordingConnector):
    """Records the structlog context visible while the connector runs."""

    def __init__(self) -> None:
        super().__init__({"events": []}, name="graph")
        self.seen: list[dict] = []

    async def execute(self, action, params, access_token):
        self.seen.append(structlog.contextvars.get_contextvars())
        return await super().execute(action, params, access_token)


@pytest.mark.asyncio
async def test_request_id_and_caller_are_bound_to_log_context_for_the_request() -> None:
    settings = Settings()
    connectors = build_connectors(settings)
    snoop = ContextSnoopingConnector()
    connectors.register(snoop, name="graph")
    container = _container(connectors)

    response = await container.orchestrator.process("show my schedule", "  user-7 ", "token")

    assert snoop.seen == [{"request_id": response.request_id, "caller_id": "user-7"}]
    assert "request_id" not in structlog.contextvars.get_contextvars()
