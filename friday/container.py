from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .connectors import ConnectorRegistry, GraphConnector, HttpConnector, WorkspaceToolConnector
from .core.config import Settings, get_settings
from .core.logging import get_logger
from .orchestration.classifier import IntentClassifier
from .orchestration.executor import Executor
from .orchestration.guardrails import ComplianceEngine
from .orchestration.orchestrator import Orchestrator
from .orchestration.planner import Planner
from .orchestration.registry import CapabilityRegistry, default_agents
from .services.audit import InMemoryAuditStore
from .services.memory import InMemoryContextStore

logger = get_logger(name=__name__)

TimestampFactory = Callable[[], datetime]


@dataclass(slots=True)
class OrchestratorContainer:
    """Explicitly wired dependency context handed to request handlers."""

    settings: Settings
    connectors: ConnectorRegistry
    registry: CapabilityRegistry
    memory: InMemoryContextStore
    audit: InMemoryAuditStore
    orchestrator: Orchestrator
    started: bool = False

    async def startup(self) -> None:
        if self.started:
            return
        self.started = True
        logger.info(
            "container_started",
            agents=[agent.id for agent in self.registry.list_all()],
            connectors=self.connectors.list(),
            environment=self.settings.environment,
        )

    async def shutdown(self) -> None:
        if not self.started:
            return
        await self.connectors.aclose()
        self.started = False
        logger.info("container_stopped")


def build_connectors(settings: Settings, *, now: TimestampFactory | None = None) -> ConnectorRegistry:
    connectors = ConnectorRegistry()
    connectors.register(GraphConnector(now=now), aliases=["microsoft-graph"])
    if settings.connectors.custom_mcp.base_url:
        connectors.register(HttpConnector("custom-mcp", settings.connectors.custom_mcp), aliases=["custom"])
    else:
        connectors.register(WorkspaceToolConnector(now=now), aliases=["custom"])
    connectors.register(HttpConnector("servicenow", settings.connectors.servicenow))
    connectors.register(HttpConnector("workday", settings.connectors.workday))
    return connectors


def build_container(
    settings: Settings | None = None,
    *,
    connectors: ConnectorRegistry | None = None,
    registry: CapabilityRegistry | None = None,
    now: TimestampFactory | None = None,
) -> OrchestratorContainer:
    settings = settings or get_settings()
    connectors = connectors if connectors is not None else build_connectors(settings, now=now)
    registry = registry if registry is not None else CapabilityRegistry(default_agents())
    memory = InMemoryContextStore(settings=settings.memory)
    audit = InMemoryAuditStore(settings=settings.audit, now=now)
    orchestrator = Orchestrator(
        registry=registry,
        classifier=IntentClassifier(settings=settings.classifier),
        planner=Planner(registry, settings=settings.planning),
        guardrails=ComplianceEngine(audit, registry, settings=settings.guardrails, now=now),
        executor=Executor(registry, connectors, settings=settings.executor),
        memory=memory,
        audit=audit,
    )
    return OrchestratorContainer(
        settings=settings,
        connectors=connectors,
        registry=registry,
        memory=memory,
        audit=audit,
        orchestrator=orchestrator,
    )


__all__ = ["OrchestratorContainer", "build_connectors", "build_container"]
