from __future__ import annotations

from fastapi import Request

from .container import OrchestratorContainer
from .orchestration.orchestrator import Orchestrator


def get_container(request: Request) -> OrchestratorContainer:
    return request.app.state.container


def get_orchestrator(request: Request) -> Orchestrator:
    return get_container(request).orchestrator
