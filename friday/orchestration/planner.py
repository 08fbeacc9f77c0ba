from __future__ import annotations

from typing import Mapping

from ..core import metrics
from ..core.config import PlanningSettings
from ..core.logging import get_logger
from ..schemas.orchestrator import ExecutionPlan, ExecutionStep, Intent
from .classifier import UNKNOWN_INTENT
from .exceptions import NoCapableAgentError, UnmappedIntentError
from .registry import CapabilityRegistry

logger = get_logger(name=__name__)

VALIDATE_ACTION = "validate-intent"
FORMAT_ACTION = "format-response"
UNKNOWN_ACTION = "unknown-action"

VALIDATE_STEP_ID = "step-1-validate"
EXECUTE_STEP_ID = "step-2-execute"
FORMAT_STEP_ID = "step-3-format"

ACTION_TABLE: Mapping[str, str] = {
    "schedule.view": "fetch-calendar-events",
    "schedule.create": "create-calendar-event",
    "news.view": "fetch-news-items",
    "action.view": "fetch-action-items",
    "action.complete": "complete-action-item",
    "decision.view": "fetch-decisions",
    "decision.make": "process-decision",
    "approval.view": "fetch-approvals",
    "approval.process": "process-approval",
    "servicenow.ticket": "create-servicenow-ticket",
    "workday.timeoff": "request-time-off",
    "workday.expense": "submit-expense",
}


class Planner:
    """Builds the fixed three-step plan (validate, execute, format) for an intent."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        *,
        settings: PlanningSettings | None = None,
        action_table: Mapping[str, str] | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings or PlanningSettings()
        self._actions = dict(action_table if action_table is not None else ACTION_TABLE)

    def resolve_action(self, intent_type: str) -> str:
        action = self._actions.get(intent_type)
        if action is not None:
            return action
        if intent_type == UNKNOWN_INTENT:
            return UNKNOWN_ACTION
        raise UnmappedIntentError(f"No action mapped for intent: {intent_type}", intent_type=intent_type)

    def create_plan(self, intent: Intent) -> ExecutionPlan:
        candidates = self._registry.find(intent.type)
        if not candidates:
            metrics.increment_planner_outcome(status="no_capable_agent")
            raise NoCapableAgentError(f"No agent available for intent: {intent.type}", intent_type=intent.type)

        agent = candidates[0]
        try:
            action = self.resolve_action(intent.type)
        except UnmappedIntentError:
            metrics.increment_planner_outcome(status="unmapped_intent")
            raise

        steps = [
            ExecutionStep(
                id=VALIDATE_STEP_ID,
                action=VALIDATE_ACTION,
                parameters={"intent": intent.model_dump()},
            ),
            ExecutionStep(
                id=EXECUTE_STEP_ID,
                action=action,
                parameters={**intent.entities, "intent_type": intent.type},
                bound_agent_ref=agent.id,
            ),
            ExecutionStep(
                id=FORMAT_STEP_ID,
                action=FORMAT_ACTION,
                parameters={"format": "json", "input_from": EXECUTE_STEP_ID},
            ),
        ]
        plan = ExecutionPlan(
            intent=intent,
            selected_agent=agent,
            steps=steps,
            estimated_duration_ms=len(steps) * self._settings.per_step_cost_ms,
        )
        metrics.increment_planner_outcome(status="planned")
        logger.info(
            "plan_created",
            plan_id=plan.id,
            intent_type=intent.type,
            agent_id=agent.id,
            action=action,
            candidates=len(candidates),
        )
        return plan


__all__ = [
    "ACTION_TABLE",
    "EXECUTE_STEP_ID",
    "FORMAT_ACTION",
    "FORMAT_STEP_ID",
    "Planner",
    "UNKNOWN_ACTION",
    "VALIDATE_ACTION",
    "VALIDATE_STEP_ID",
]
