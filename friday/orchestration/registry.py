from __future__ import annotations

from typing import Iterable

from ..core.logging import get_logger
from ..schemas.agents import Agent, AgentCapability
from .exceptions import AgentNotFoundError

logger = get_logger(name=__name__)


class CapabilityRegistry:
    """Catalog of agents keyed by id, kept in registration order."""

    def __init__(self, agents: Iterable[Agent] | None = None) -> None:
        self._agents: dict[str, Agent] = {}
        for agent in agents or ():
            self.register(agent)

    def register(self, agent: Agent) -> None:
        # dict assignment keeps the original slot when an id is re-registered
        if agent.id in self._agents:
            logger.info("agent_replaced", agent_id=agent.id)
        self._agents[agent.id] = agent

    def find(self, intent_type: str) -> list[Agent]:
        return [agent for agent in self._agents.values() if agent.supports(intent_type)]

    def get(self, agent_id: str) -> Agent:
        try:
            return self._agents[agent_id]
        except KeyError as exc:
            raise AgentNotFoundError(agent_id) from exc

    def list_all(self) -> list[Agent]:
        return list(self._agents.values())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)


def _capability(name: str, description: str, intents: Iterable[str], scopes: Iterable[str] = ()) -> AgentCapability:
    return AgentCapability(
        name=name,
        description=description,
        supported_intent_types=set(intents),
        required_scopes=set(scopes),
    )


def default_agents() -> list[Agent]:
    """Stock catalog registered at startup."""
    return [
        Agent(
            id="graph-calendar",
            display_name="Calendar Agent",
            endpoint_ref="graph",
            capabilities=[
                _capability("view-schedule", "Read calendar events", ["schedule.view"], ["Calendars.Read"]),
                _capability("create-event", "Create calendar events", ["schedule.create"], ["Calendars.ReadWrite"]),
            ],
        ),
        Agent(
            id="graph-news",
            display_name="Company News Agent",
            endpoint_ref="graph",
            capabilities=[
                _capability("view-news", "Read company news", ["news.view"], ["Sites.Read.All"]),
            ],
        ),
        Agent(
            id="servicenow-agent",
            display_name="ServiceNow Agent",
            endpoint_ref="servicenow",
            capabilities=[
                _capability("create-ticket", "Open IT service tickets", ["servicenow.ticket"], ["servicenow.incident.write"]),
            ],
        ),
        Agent(
            id="workday-agent",
            display_name="Workday Agent",
            endpoint_ref="workday",
            capabilities=[
                _capability("time-off", "Request time off", ["workday.timeoff"], ["workday.absence.write"]),
                _capability("expenses", "Submit expense reports", ["workday.expense"], ["workday.expense.write"]),
            ],
        ),
        Agent(
            id="custom-mcp-agent",
            display_name="Workspace Tools Agent",
            endpoint_ref="custom-mcp",
            capabilities=[
                _capability("action-items", "Track action items", ["action.view", "action.complete"]),
                _capability("decisions", "Review and record decisions", ["decision.view", "decision.make"]),
            ],
        ),
        Agent(
            id="approvals-agent",
            display_name="Approvals Agent",
            endpoint_ref="custom-mcp",
            capabilities=[
                _capability("approvals", "Review and process approvals", ["approval.view", "approval.process"]),
            ],
        ),
    ]


__all__ = ["CapabilityRegistry", "default_agents"]
