from __future__ import annotations

import asyncio

import pytest

from friday.connectors.base import BaseConnector
from friday.connectors.registry import ConnectorRegistry
from friday.core.config import ExecutorSettings
from friday.orchestration.exceptions import StepExecutionError
from friday.orchestration.executor import Executor
from friday.orchestration.planner import Planner
from friday.orchestration.registry import CapabilityRegistry
from friday.schemas.orchestrator import ExecutionPlan, ExecutionStep, Intent, StepStatus
from tests.helpers.stubs import FailingConnector, RecordingConnector, SlowConnector, make_agent


def _build(connector, *, settings: ExecutorSettings | None = None):
    registry = CapabilityRegistry([make_agent("calendar-agent", "stub", "schedule.view")])
    connectors = ConnectorRegistry()
    connectors.register(connector, name="stub")
    executor = Executor(registry, connectors, settings=settings)
    intent = Intent(type="schedule.view", confidence=0.9, entities={"date": "today"}, raw_utterance="show my schedule")
    plan = Planner(registry).create_plan(intent)
    return executor, plan


@pytest.mark.asyncio
async def test_run_threads_connector_output_into_format_step() -> None:
    connector = RecordingConnector({"events": [{"title": "Team Standup"}]})
    executor, plan = _build(connector)

    result = await executor.run(plan, "opaque-token")

    assert result == {
        "format": "json",
        "intent": "schedule.view",
        "agent": "calendar-agent",
        "data": {"events": [{"title": "Team Standup"}]},
    }
    assert [step.status for step in plan.steps] == [StepStatus.COMPLETED] * 3
    assert plan.steps[0].result["valid"] is True


@pytest.mark.asyncio
async def test_token_is_forwarded_verbatim() -> None:
    connector = RecordingConnector()
    executor, plan = _build(connector)
    token = "  Bearer-ish.token/with spaces  "

    await executor.run(plan, token)

    assert connector.calls == [
        ("fetch-calendar-events", {"date": "today", "intent_type": "schedule.view"}, token),
    ]


@pytest.mark.asyncio
async def test_failing_step_stops_the_plan() -> None:
    executor, plan = _build(FailingConnector("calendar backend down"))

    with pytest.raises(StepExecutionError) as excinfo:
        await executor.run(plan, "token")

    assert excinfo.value.step_id == "step-2-execute"
    assert plan.steps[0].status is StepStatus.COMPLETED
    assert plan.steps[1].status is StepStatus.FAILED
    assert plan.steps[1].error == "calendar backend down"
    assert plan.steps[2].status is StepStatus.PENDING
    assert plan.steps[2].result is None


@pytest.mark.asyncio
async def test_step_timeout_fails_the_step() -> None:
    connector = SlowConnector()
    executor, plan = _build(connector, settings=ExecutorSettings(step_timeout_seconds=0.05))

    with pytest.raises(StepExecutionError) as excinfo:
        await executor.run(plan, "token")

    assert excinfo.value.step_id == "step-2-execute"
    assert "timed out" in (plan.steps[1].error or "")
    assert plan.steps[2].status is StepStatus.PENDING



class GatewayTimeoutConnector(BaseConnector):
    name = "gateway"

    async def execute(self, action, params, access_token):
        raise TimeoutError("upstream gateway timeout")


@pytest.mark.asyncio
async def test_timeout_raised_by_connector_is_a_step_failure() -> None:
    executor, plan = _build(GatewayTimeoutConnector(), settings=ExecutorSettings(step_timeout_seconds=5))

    with pytest.raises(StepExecutionError) as excinfo:
        await executor.run(plan, "token")

    assert excinfo.value.step_id == "step-2-execute"
    assert isinstance(excinfo.value.cause, TimeoutError)
    assert plan.steps[1].status is StepStatus.FAILED
    assert plan.steps[1].error == "upstream gateway timeout"
    assert "timed out" not in plan.steps[1].error
    assert plan.steps[2].status is StepStatus.PENDING

@pytest.mark.asyncio
async def test_cancellation_marks_in_flight_step_failed() -> None:
    connector = SlowConnector()
    executor, plan = _build(connector)

    task = asyncio.create_task(executor.run(plan, "token"))
    await asyncio.wait_for(connector.started.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert plan.steps[1].status is StepStatus.FAILED
    assert plan.steps[1].error == "Step cancelled"
    assert plan.steps[2].status is StepStatus.PENDING


@pytest.mark.asyncio
async def test_missing_handler_fails_unbound_step() -> None:
    registry = CapabilityRegistry([make_agent("calendar-agent", "stub", "schedule.view")])
    executor = Executor(registry, ConnectorRegistry())
    intent = Intent(type="schedule.view", confidence=0.9)
    plan = ExecutionPlan(
        intent=intent,
        selected_agent=registry.get("calendar-agent"),
        steps=[ExecutionStep(id="only", action="summarize")],
    )

    with pytest.raises(StepExecutionError) as excinfo:
        await executor.run(plan, "token")

    assert excinfo.value.step_id == "only"
    assert plan.steps[0].error == "No handler registered for action: summarize"


@pytest.mark.asyncio
async def test_registered_handler_dispatches_by_action() -> None:
    registry = CapabilityRegistry([make_agent("calendar-agent", "stub", "schedule.view")])
    executor = Executor(registry, ConnectorRegistry())

    async def summarize(parameters, plan):
        return {"summary": f"{parameters['input']['valid']}"}

    executor.register_handler("summarize", summarize)
    plan = ExecutionPlan(
        intent=Intent(type="schedule.view", confidence=0.9),
        selected_agent=registry.get("calendar-agent"),
        steps=[
            ExecutionStep(id="validate", action="validate-intent"),
            ExecutionStep(id="summarize", action="summarize", parameters={"input_from": "validate"}),
        ],
    )

    assert await executor.run(plan, "token") == {"summary": "True"}
    assert "summarize" in executor.handlers()


@pytest.mark.asyncio
async def test_unknown_endpoint_fails_bound_step() -> None:
    registry = CapabilityRegistry([make_agent("calendar-agent", "nowhere", "schedule.view")])
    executor = Executor(registry, ConnectorRegistry())
    plan = Planner(registry).create_plan(Intent(type="schedule.view", confidence=0.9))

    with pytest.raises(StepExecutionError) as excinfo:
        await executor.run(plan, "token")

    assert excinfo.value.step_id == "step-2-execute"
    assert plan.steps[1].error == "Connector not found: nowhere"
