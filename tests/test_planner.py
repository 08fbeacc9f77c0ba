from __future__ import annotations

import pytest

from friday.core.config import PlanningSettings
from friday.orchestration.exceptions import NoCapableAgentError, UnmappedIntentError
from friday.orchestration.planner import Planner
from friday.orchestration.registry import CapabilityRegistry, default_agents
from friday.schemas.orchestrator import Intent, StepStatus
from tests.helpers.stubs import make_agent


def _intent(intent_type: str, **entities: object) -> Intent:
    return Intent(type=intent_type, confidence=0.9, entities=entities, raw_utterance="test")


def test_plan_has_fixed_three_step_shape() -> None:
    registry = CapabilityRegistry(default_agents())
    plan = Planner(registry).create_plan(_intent("schedule.view", date="today"))

    assert [step.id for step in plan.steps] == ["step-1-validate", "step-2-execute", "step-3-format"]
    assert [step.action for step in plan.steps] == ["validate-intent", "fetch-calendar-events", "format-response"]
    assert all(step.status is StepStatus.PENDING for step in plan.steps)
    assert plan.selected_agent.id == "graph-calendar"
    assert plan.estimated_duration_ms == 3000

    execute = plan.get_step("step-2-execute")
    assert execute is not None
    assert execute.bound_agent_ref == "graph-calendar"
    assert execute.parameters == {"date": "today", "intent_type": "schedule.view"}
    assert plan.steps[2].parameters == {"format": "json", "input_from": "step-2-execute"}
    assert plan.steps[0].bound_agent_ref is None


def test_first_candidate_wins() -> None:
    registry = CapabilityRegistry(
        [
            make_agent("preferred", "graph", "news.view"),
            make_agent("fallback", "graph", "news.view"),
        ]
    )

    plan = Planner(registry).create_plan(_intent("news.view"))

    assert plan.selected_agent.id == "preferred"


def test_no_capable_agent_raises() -> None:
    registry = CapabilityRegistry([make_agent("calendar", "graph", "schedule.view")])

    with pytest.raises(NoCapableAgentError) as excinfo:
        Planner(registry).create_plan(_intent("workday.expense"))

    assert excinfo.value.intent_type == "workday.expense"


def test_unmapped_intent_raises() -> None:
    registry = CapabilityRegistry([make_agent("mystery", "graph", "mystery.intent")])

    with pytest.raises(UnmappedIntentError):
        Planner(registry).create_plan(_intent("mystery.intent"))


def test_unknown_intent_uses_fallback_action() -> None:
    registry = CapabilityRegistry([make_agent("catch-all", "custom-mcp", "unknown")])

    plan = Planner(registry).create_plan(_intent("unknown"))

    assert plan.steps[1].action == "unknown-action"


def test_duration_uses_configured_step_cost() -> None:
    registry = CapabilityRegistry(default_agents())
    planner = Planner(registry, settings=PlanningSettings(per_step_cost_ms=250))

    assert planner.create_plan(_intent("news.view")).estimated_duration_ms == 750
