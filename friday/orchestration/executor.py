from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Mapping, Union

from ..connectors.registry import ConnectorRegistry
from ..core import metrics
from ..core.config import ExecutorSettings
from ..core.logging import get_logger
from ..schemas.orchestrator import ExecutionPlan, ExecutionStep, StepStatus
from .exceptions import StepExecutionError
from .planner import FORMAT_ACTION, VALIDATE_ACTION
from .registry import CapabilityRegistry

logger = get_logger(name=__name__)

StepHandler = Callable[[Mapping[str, Any], ExecutionPlan], Union[Any, Awaitable[Any]]]

INPUT_FROM_KEY = "input_from"
INPUT_KEY = "input"


def validate_intent(parameters: Mapping[str, Any], plan: ExecutionPlan) -> dict[str, Any]:
    intent = plan.intent
    if not intent.type:
        raise ValueError("Intent type is missing")
    return {
        "valid": True,
        "intent_type": intent.type,
        "confidence": intent.confidence,
        "agent_id": plan.selected_agent.id,
    }


def format_response(parameters: Mapping[str, Any], plan: ExecutionPlan) -> dict[str, Any]:
    return {
        "format": parameters.get("format", "json"),
        "intent": plan.intent.type,
        "agent": plan.selected_agent.id,
        "data": parameters.get(INPUT_KEY),
    }


class Executor:
    """Runs plan steps strictly in order and stops at the first failure.

    Unbound steps are served by the handler table; steps bound to an agent are
    sent to the connector named by the agent's ``endpoint_ref``. A step whose
    parameters carry ``input_from`` receives that earlier step's result under
    ``input``. Nothing is retried.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        connectors: ConnectorRegistry,
        *,
        settings: ExecutorSettings | None = None,
    ) -> None:
        self._registry = registry
        self._connectors = connectors
        self._settings = settings or ExecutorSettings()
        self._handlers: dict[str, StepHandler] = {}
        self.register_handler(VALIDATE_ACTION, validate_intent)
        self.register_handler(FORMAT_ACTION, format_response)

    def register_handler(self, action: str, handler: StepHandler) -> None:
        self._handlers[action] = handler

    def handlers(self) -> list[str]:
        return sorted(self._handlers)

    async def run(self, plan: ExecutionPlan, access_token: str) -> Any:
        logger.info("plan_execution_started", plan_id=plan.id, steps=len(plan.steps))
        result: Any = None
        for step in plan.steps:
            result = await self._run_step(plan, step, access_token)
        logger.info("plan_execution_completed", plan_id=plan.id)
        return result

    async def _run_step(self, plan: ExecutionPlan, step: ExecutionStep, access_token: str) -> Any:
        step.status = StepStatus.RUNNING
        start = time.perf_counter()
        timeout = self._settings.step_timeout_seconds
        try:
            parameters = self._resolve_parameters(plan, step)
            operation = self._dispatch(plan, step, parameters, access_token)
            if timeout is not None:
                output = await asyncio.wait_for(operation, timeout=timeout)
            else:
                output = await operation
        except asyncio.CancelledError:
            self._fail(step, "Step cancelled", start)
            logger.warning("step_cancelled", plan_id=plan.id, step_id=step.id, action=step.action)
            raise
        except asyncio.TimeoutError as exc:
            message = f"Step timed out after {timeout}s"
            self._fail(step, message, start)
            logger.warning("step_timeout", plan_id=plan.id, step_id=step.id, action=step.action, timeout=timeout)
            raise StepExecutionError(step.id, message) from exc
        except StepExecutionError as exc:
            self._fail(step, exc.reason, start)
            logger.warning("step_failed", plan_id=plan.id, step_id=step.id, action=step.action, error=exc.reason)
            raise
        except Exception as exc:
            self._fail(step, str(exc) or type(exc).__name__, start)
            logger.warning(
                "step_failed",
                plan_id=plan.id,
                step_id=step.id,
                action=step.action,
                error=step.error,
                error_type=type(exc).__name__,
            )
            raise StepExecutionError(step.id, exc) from exc

        step.result = output
        step.status = StepStatus.COMPLETED
        metrics.observe_executor_step(action=step.action, outcome="completed", latency=time.perf_counter() - start)
        logger.debug("step_completed", plan_id=plan.id, step_id=step.id, action=step.action)
        return output

    def _resolve_parameters(self, plan: ExecutionPlan, step: ExecutionStep) -> dict[str, Any]:
        parameters = dict(step.parameters)
        source_id = parameters.get(INPUT_FROM_KEY)
        if source_id is None:
            return parameters
        source = plan.get_step(source_id)
        if source is None or source.status is not StepStatus.COMPLETED:
            raise StepExecutionError(step.id, f"Input step {source_id} has not completed")
        parameters[INPUT_KEY] = source.result
        return parameters

    async def _dispatch(
        self,
        plan: ExecutionPlan,
        step: ExecutionStep,
        parameters: Mapping[str, Any],
        access_token: str,
    ) -> Any:
        try:
            return await self._call(plan, step, parameters, access_token)
        except asyncio.TimeoutError as exc:
            # raised by the step itself, not by the step deadline
            raise StepExecutionError(step.id, exc) from exc

    async def _call(
        self,
        plan: ExecutionPlan,
        step: ExecutionStep,
        parameters: Mapping[str, Any],
        access_token: str,
    ) -> Any:
        if step.bound_agent_ref is not None:
            agent = self._registry.get(step.bound_agent_ref)
            connector = self._connectors.get(agent.endpoint_ref)
            return await connector.execute(step.action, parameters, access_token)

        handler = self._handlers.get(step.action)
        if handler is None:
            raise StepExecutionError(step.id, f"No handler registered for action: {step.action}")
        output = handler(parameters, plan)
        if inspect.isawaitable(output):
            output = await output
        return output

    @staticmethod
    def _fail(step: ExecutionStep, message: str, start: float) -> None:
        step.status = StepStatus.FAILED
        step.error = message
        metrics.observe_executor_step(action=step.action, outcome="failed", latency=time.perf_counter() - start)


__all__ = ["Executor", "StepHandler", "format_response", "validate_intent"]
