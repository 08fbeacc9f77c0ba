from __future__ import annotations

import asyncio
import time
from typing import Any, Mapping
from uuid import uuid4

from ..core import metrics
from ..core.logging import get_logger, request_context
from ..schemas.agents import Agent
from ..schemas.orchestrator import AuditRecord, CallerContext, Intent, OrchestratorResponse
from ..services.audit import AuditStore
from ..services.memory import ContextStore
from .classifier import IntentClassifier
from .enums import AuditAction, RequestStage
from .exceptions import ComplianceFailure, InputError, PlanningError, StepExecutionError
from .executor import Executor
from .guardrails import ComplianceEngine
from .planner import Planner
from .registry import CapabilityRegistry

logger = get_logger(name=__name__)

ANONYMOUS_CALLER = "anonymous"


class Orchestrator:
    """Runs one request through classify, plan, compliance, execute and record.

    Every failure path writes an audit record before the error is surfaced.
    Compliance rejections are the exception: the engine has already recorded
    the ``compliance-check`` entry for them.
    """

    def __init__(
        self,
        *,
        registry: CapabilityRegistry,
        classifier: IntentClassifier,
        planner: Planner,
        guardrails: ComplianceEngine,
        executor: Executor,
        memory: ContextStore,
        audit: AuditStore,
    ) -> None:
        self.registry = registry
        self.classifier = classifier
        self.planner = planner
        self.guardrails = guardrails
        self.executor = executor
        self.memory = memory
        self.audit = audit

    async def process(
        self,
        utterance: str,
        caller_id: str,
        access_token: str,
        context: Mapping[str, Any] | None = None,
    ) -> OrchestratorResponse:
        request_id = f"req-{uuid4().hex[:12]}"
        caller_id = (caller_id or "").strip() or ANONYMOUS_CALLER
        with request_context(request_id=request_id, caller_id=caller_id):
            return await self._run(request_id, utterance, caller_id, access_token, context)

    async def _run(
        self,
        request_id: str,
        utterance: str,
        caller_id: str,
        access_token: str,
        context: Mapping[str, Any] | None,
    ) -> OrchestratorResponse:
        start = time.perf_counter()
        status = "failed"
        metrics.mark_orchestrator_run_started()
        self._stage(RequestStage.RECEIVED)
        try:
            await self._validate_input(request_id, utterance, caller_id, access_token)
            if context:
                await self._apply_context(caller_id, context)

            intent = self.classifier.classify(utterance)
            self._stage(RequestStage.CLASSIFIED, intent_type=intent.type, confidence=intent.confidence)
            await self.memory.add_activity(caller_id, f"Intent: {intent.type}")
            await self.memory.add_message(
                caller_id,
                "user",
                utterance,
                {"request_id": request_id, "intent": intent.type},
            )

            try:
                plan = self.planner.create_plan(intent)
            except PlanningError as exc:
                self._stage(RequestStage.FAILED, reason=exc.message)
                await self._record_failure(
                    caller_id,
                    request_id,
                    exc.message,
                    stage=RequestStage.PLANNED,
                    intent=intent,
                )
                raise
            self._stage(RequestStage.PLANNED, plan_id=plan.id, agent_id=plan.selected_agent.id)

            compliance = await self.guardrails.evaluate(intent, plan, caller_id)
            self._stage(
                RequestStage.COMPLIANCE_CHECKED,
                passed=compliance.passed,
                warnings=len(compliance.warnings),
            )
            if not compliance.passed:
                status = "rejected"
                self._stage(RequestStage.REJECTED, violations=compliance.violations)
                rejected = OrchestratorResponse(
                    request_id=request_id,
                    intent=intent,
                    plan=plan,
                    result=None,
                    compliance=compliance,
                    execution_time_ms=self._elapsed_ms(start),
                )
                raise ComplianceFailure(compliance.violations, rejected)

            try:
                result = await self.executor.run(plan, access_token)
            except StepExecutionError as exc:
                self._stage(RequestStage.FAILED, step_id=exc.step_id, reason=exc.reason)
                await self._record_failure(
                    caller_id,
                    request_id,
                    exc.message,
                    stage=RequestStage.EXECUTED,
                    intent=intent,
                    plan_id=plan.id,
                    step_id=exc.step_id,
                )
                raise
            except asyncio.CancelledError:
                status = "cancelled"
                self._stage(RequestStage.FAILED, reason="cancelled")
                await self._record_failure(
                    caller_id,
                    request_id,
                    "Request cancelled",
                    stage=RequestStage.EXECUTED,
                    intent=intent,
                    plan_id=plan.id,
                )
                raise
            self._stage(RequestStage.EXECUTED)

            await self.memory.add_activity(caller_id, f"Executed: {intent.type}")
            await self.memory.add_message(
                caller_id,
                "assistant",
                f"Completed {intent.type} via {plan.selected_agent.display_name}",
                {"request_id": request_id, "plan_id": plan.id},
            )
            await self.audit.append(
                caller_id,
                AuditAction.ORCHESTRATOR_EXECUTION.value,
                True,
                {
                    "request_id": request_id,
                    "intent_type": intent.type,
                    "plan_id": plan.id,
                    "agent_id": plan.selected_agent.id,
                    "steps": len(plan.steps),
                },
            )
            self._stage(RequestStage.RECORDED)

            response = OrchestratorResponse(
                request_id=request_id,
                intent=intent,
                plan=plan,
                result=result,
                compliance=compliance,
                execution_time_ms=self._elapsed_ms(start),
            )
            status = "success"
            self._stage(RequestStage.DONE, execution_time_ms=response.execution_time_ms)
            return response
        finally:
            metrics.mark_orchestrator_run_finished(status=status, latency=time.perf_counter() - start)

    async def list_agents(self) -> list[Agent]:
        return self.registry.list_all()

    async def get_context(self, caller_id: str) -> CallerContext:
        return await self.memory.get_context(caller_id)

    async def get_audit_logs(self, caller_id: str | None = None, limit: int | None = None) -> list[AuditRecord]:
        return await self.audit.query(caller_id=caller_id, limit=limit)

    async def clear_context(self, caller_id: str) -> None:
        await self.memory.clear(caller_id)

    async def _validate_input(self, request_id: str, utterance: str, caller_id: str, access_token: str) -> None:
        if not isinstance(utterance, str) or not utterance.strip():
            error = InputError("Utterance is required", field="utterance")
        elif not isinstance(access_token, str) or not access_token.strip():
            error = InputError("Access token is required", field="access_token")
        else:
            return
        await self._record_failure(caller_id, request_id, error.message, stage=RequestStage.RECEIVED, field=error.field)
        raise error

    async def _apply_context(self, caller_id: str, context: Mapping[str, Any]) -> None:
        profile = context.get("profile")
        if isinstance(profile, Mapping):
            await self.memory.update_profile(caller_id, profile)
        preferences = context.get("preferences")
        if isinstance(preferences, Mapping):
            await self.memory.update_preferences(caller_id, preferences)
        session_id = context.get("session_id")
        if isinstance(session_id, str) and session_id:
            await self.memory.set_session(caller_id, session_id)

    async def _record_failure(
        self,
        caller_id: str,
        request_id: str,
        message: str,
        *,
        stage: RequestStage,
        intent: Intent | None = None,
        **detail: Any,
    ) -> AuditRecord:
        payload: dict[str, Any] = {"request_id": request_id, "stage": stage.value, "error": message, **detail}
        if intent is not None:
            payload["intent_type"] = intent.type
        return await self.audit.append(caller_id, AuditAction.ORCHESTRATOR_EXECUTION.value, False, payload)

    @staticmethod
    def _stage(stage: RequestStage, **fields: Any) -> None:
        logger.info("request_stage", stage=stage.value, **fields)

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 3)


__all__ = ["Orchestrator"]
