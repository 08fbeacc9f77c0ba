from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.audit import CALLER_HEADER
from ..core.logging import get_logger
from ..dependencies import get_orchestrator
from ..orchestration.exceptions import (
    ComplianceFailure,
    InputError,
    OrchestrationError,
    StepExecutionError,
)
from ..orchestration.orchestrator import ANONYMOUS_CALLER, Orchestrator
from ..schemas.api import ErrorEnvelope, OrchestrateRequest, SuccessEnvelope

logger = get_logger(name=__name__)

router = APIRouter()


def _success(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    envelope = SuccessEnvelope(data=data)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


def _error(status_code: int, kind: str, message: str, **extra: Any) -> JSONResponse:
    envelope = ErrorEnvelope(kind=kind, error=message, **extra)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json", exclude_none=True))


def _bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def _extract_body(request: Request) -> OrchestrateRequest:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InputError("Request body must be valid JSON", field="utterance") from exc
    if not isinstance(payload, dict):
        raise InputError("Request body must be a JSON object", field="utterance")
    try:
        return OrchestrateRequest.model_validate(payload)
    except ValidationError as exc:
        raise InputError("Invalid request body", field="utterance") from exc


@router.post("/orchestrate", tags=["orchestrator"])
async def orchestrate(request: Request, orchestrator: Orchestrator = Depends(get_orchestrator)) -> JSONResponse:
    try:
        body = await _extract_body(request)
    except InputError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, type(exc).__name__, exc.message)

    token = _bearer_token(request) or body.access_token or ""
    caller_id = body.caller_id or request.headers.get(CALLER_HEADER) or ANONYMOUS_CALLER
    try:
        response = await orchestrator.process(body.utterance or "", caller_id, token, body.context)
    except InputError as exc:
        status_code = status.HTTP_400_BAD_REQUEST if exc.field == "utterance" else status.HTTP_401_UNAUTHORIZED
        return _error(status_code, type(exc).__name__, exc.message)
    except ComplianceFailure as exc:
        execution_time_ms = exc.response.execution_time_ms if exc.response is not None else None
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            type(exc).__name__,
            exc.message,
            violations=exc.violations,
            execution_time_ms=execution_time_ms,
        )
    except StepExecutionError as exc:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, type(exc).__name__, exc.message, step_id=exc.step_id)
    except OrchestrationError as exc:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, type(exc).__name__, exc.message)
    except Exception:
        logger.exception("orchestrate_unhandled_error", caller_id=caller_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", "Internal server error")
    return _success(response.model_dump(mode="json"))


@router.get("/agents", tags=["orchestrator"])
async def list_agents(orchestrator: Orchestrator = Depends(get_orchestrator)) -> JSONResponse:
    agents = await orchestrator.list_agents()
    return _success([agent.model_dump(mode="json") for agent in agents])


@router.get("/context/{caller_id}", tags=["memory"])
async def get_context(caller_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> JSONResponse:
    context = await orchestrator.get_context(caller_id)
    return _success(context.model_dump(mode="json"))


@router.delete("/context/{caller_id}", tags=["memory"])
async def clear_context(caller_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> JSONResponse:
    await orchestrator.clear_context(caller_id)
    return _success({"caller_id": caller_id, "cleared": True})


@router.get("/audit", tags=["audit"])
async def get_audit_logs(
    caller_id: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    records = await orchestrator.get_audit_logs(caller_id=caller_id, limit=limit)
    return _success([record.model_dump(mode="json") for record in records])
