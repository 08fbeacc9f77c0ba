"""Local toolset for action items, decisions and approvals (the custom MCP tools)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from .base import LocalConnector

TimestampFactory = Callable[[], datetime]


class WorkspaceToolConnector(LocalConnector):
    name = "custom-mcp"
    kind = "mcp"

    def __init__(self, *, now: TimestampFactory | None = None) -> None:
        self._now: TimestampFactory = now or (lambda: datetime.now(timezone.utc))
        super().__init__()

    def _register_default_actions(self) -> None:
        self.register_action("fetch-action-items", self._fetch_action_items)
        self.register_action("complete-action-item", self._complete_action_item)
        self.register_action("fetch-decisions", self._fetch_decisions)
        self.register_action("process-decision", self._process_decision)
        self.register_action("fetch-approvals", self._fetch_approvals)
        self.register_action("process-approval", self._process_approval)

    def _fetch_action_items(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        now = self._now()
        return {
            "items": [
                {
                    "id": "1",
                    "title": "Complete quarterly review",
                    "description": "Submit quarterly performance review",
                    "priority": "high",
                    "due_date": (now + timedelta(days=7)).isoformat(),
                    "status": "pending",
                },
                {
                    "id": "2",
                    "title": "Update project documentation",
                    "description": "Update technical documentation for project",
                    "priority": "medium",
                    "due_date": (now + timedelta(days=14)).isoformat(),
                    "status": "in_progress",
                },
            ]
        }

    def _complete_action_item(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        return {"id": params.get("action_id"), "status": "completed"}

    def _fetch_decisions(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        return {
            "decisions": [
                {
                    "id": "1",
                    "title": "Approve new vendor contract",
                    "description": "Review and approve the proposed vendor contract",
                    "options": ["Approve", "Reject", "Request Changes"],
                    "requester": "John Doe",
                    "requested_at": self._now().isoformat(),
                    "status": "pending",
                }
            ]
        }

    def _process_decision(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        return {
            "id": params.get("decision_id"),
            "decision": params.get("choice", "approved"),
            "status": "processed",
        }

    def _fetch_approvals(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        now = self._now()
        return {
            "approvals": [
                {
                    "id": "1",
                    "title": "Expense Report - Travel",
                    "type": "expense",
                    "requester": "Jane Smith",
                    "requested_at": now.isoformat(),
                    "status": "pending",
                    "amount": 1250.00,
                },
                {
                    "id": "2",
                    "title": "Time Off Request",
                    "type": "time_off",
                    "requester": "Bob Johnson",
                    "requested_at": (now - timedelta(days=1)).isoformat(),
                    "status": "pending",
                },
            ]
        }

    def _process_approval(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        return {
            "id": params.get("approval_id"),
            "decision": params.get("decision", "approved"),
            "status": "processed",
        }


__all__ = ["WorkspaceToolConnector"]
