"""In-process stand-in for the Microsoft Graph calendar and news endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping
from uuid import uuid4

from .base import ConnectorError, LocalConnector

TimestampFactory = Callable[[], datetime]


class GraphConnector(LocalConnector):
    name = "graph"
    kind = "graph"

    def __init__(self, *, now: TimestampFactory | None = None) -> None:
        self._now: TimestampFactory = now or (lambda: datetime.now(timezone.utc))
        super().__init__()

    def _register_default_actions(self) -> None:
        self.register_action("fetch-calendar-events", self._fetch_calendar_events)
        self.register_action("create-calendar-event", self._create_calendar_event)
        self.register_action("fetch-news-items", self._fetch_news_items)

    def _fetch_calendar_events(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        now = self._now()
        events = [
            {
                "id": "1",
                "title": "Team Standup",
                "start_time": now.isoformat(),
                "end_time": (now + timedelta(minutes=30)).isoformat(),
                "location": "Teams Meeting",
                "attendees": [],
            },
            {
                "id": "2",
                "title": "Project Review",
                "start_time": (now + timedelta(hours=2)).isoformat(),
                "end_time": (now + timedelta(hours=3)).isoformat(),
                "location": "Conference Room A",
                "attendees": [],
            },
        ]
        return {"events": events, "range": params.get("date", "today")}

    def _create_calendar_event(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        title = params.get("title") or "New Meeting"
        if not isinstance(title, str):
            raise ConnectorError("Event title must be a string", connector=self.name, action="create-calendar-event")
        event = {
            "id": f"event-{uuid4().hex[:8]}",
            "title": title,
            "status": "created",
            "when": params.get("date"),
        }
        if params.get("person"):
            event["attendees"] = [params["person"]]
        return event

    def _fetch_news_items(self, params: Mapping[str, Any], access_token: str) -> dict[str, Any]:
        now = self._now()
        return {
            "items": [
                {
                    "id": "1",
                    "title": "Q4 Company Results Announced",
                    "summary": "Company exceeds expectations with strong Q4 performance.",
                    "published_at": now.isoformat(),
                    "source": "Corporate News",
                },
                {
                    "id": "2",
                    "title": "New Product Launch Next Month",
                    "summary": "New product features are coming in the next release.",
                    "published_at": (now - timedelta(days=1)).isoformat(),
                    "source": "Product Team",
                },
            ]
        }


__all__ = ["GraphConnector"]
