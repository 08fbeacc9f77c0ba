from __future__ import annotations

import json

import httpx
import pytest

from friday.connectors import (
    ConnectorError,
    ConnectorNotFoundError,
    ConnectorRegistry,
    GraphConnector,
    HttpConnector,
    WorkspaceToolConnector,
    normalize_connector_name,
)
from friday.core import metrics
from friday.core.config import HttpConnectorSettings
from tests.helpers.stubs import FrozenClock, RecordingConnector


def test_connector_names_are_normalized() -> None:
    assert normalize_connector_name("Custom MCP") == "custom-mcp"
    assert normalize_connector_name("service_now") == "service-now"
    assert normalize_connector_name(" /graph/ ") == "graph"


def test_registry_resolves_aliases_and_reports_missing() -> None:
    registry = ConnectorRegistry()
    connector = RecordingConnector(name="custom-mcp")
    registry.register(connector, aliases=["custom"])

    assert registry.get("Custom MCP") is connector
    assert registry.get("custom") is connector
    assert registry.has("custom")
    assert registry.list() == ["custom-mcp"]

    registry.unregister("custom-mcp")
    assert not registry.has("custom")
    with pytest.raises(ConnectorNotFoundError):
        registry.get("custom-mcp")


@pytest.mark.asyncio
async def test_registry_closes_connectors() -> None:
    registry = ConnectorRegistry()
    connector = RecordingConnector()
    registry.register(connector)

    await registry.aclose()

    assert connector.closed is True


@pytest.mark.asyncio
async def test_graph_connector_returns_calendar_events() -> None:
    clock = FrozenClock()
    connector = GraphConnector(now=clock)

    result = await connector.execute("fetch-calendar-events", {"date": "today"}, "token")

    assert [event["title"] for event in result["events"]] == ["Team Standup", "Project Review"]
    assert result["events"][0]["start_time"] == clock().isoformat()
    assert "fetch-news-items" in connector.actions()


@pytest.mark.asyncio
async def test_local_connector_rejects_unknown_actions() -> None:
    connector = WorkspaceToolConnector()

    with pytest.raises(ConnectorError) as excinfo:
        await connector.execute("delete-everything", {}, "token")

    assert excinfo.value.connector == "custom-mcp"
    assert excinfo.value.action == "delete-everything"


@pytest.mark.asyncio
async def test_local_connector_wraps_non_mapping_results() -> None:
    connector = WorkspaceToolConnector()
    connector.register_action("count-items", lambda params, token: 3)

    assert await connector.execute("count-items", {}, "token") == {"data": 3}
    approvals = await connector.execute("fetch-approvals", {}, "token")
    assert {item["type"] for item in approvals["approvals"]} == {"expense", "time_off"}


@pytest.mark.asyncio
async def test_http_connector_without_base_url_is_not_configured(monkeypatch) -> None:
    outcomes = []
    monkeypatch.setattr(metrics, "increment_connector_request", lambda **kwargs: outcomes.append(kwargs["outcome"]))
    connector = HttpConnector("servicenow", HttpConnectorSettings())

    with pytest.raises(ConnectorError) as excinfo:
        await connector.execute("create-servicenow-ticket", {}, "token")

    assert str(excinfo.value) == "servicenow credentials not configured"
    assert outcomes == ["not_configured"]


@pytest.mark.asyncio
async def test_http_connector_posts_method_and_bearer_token() -> None:
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": {"ticket": "INC0010001"}})

    settings = HttpConnectorSettings(base_url="http://servicenow.test", api_key="key-123")
    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="http://servicenow.test") as client:
        connector = HttpConnector("servicenow", settings, client=client)
        result = await connector.execute("create-servicenow-ticket", {"priority": "high"}, "raw.token")

    assert result == {"ticket": "INC0010001"}
    request = seen[0]
    assert request.url.path == "/rpc"
    assert request.headers["Authorization"] == "Bearer raw.token"
    assert request.headers["X-API-Key"] == "key-123"
    assert json.loads(request.content) == {
        "method": "servicenow.create-servicenow-ticket",
        "params": {"priority": "high"},
    }


@pytest.mark.asyncio
async def test_http_connector_does_not_retry_server_errors() -> None:
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503, json={"error": "unavailable"})

    settings = HttpConnectorSettings(base_url="http://workday.test")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://workday.test") as client:
        connector = HttpConnector("workday", settings, client=client)
        with pytest.raises(ConnectorError) as excinfo:
            await connector.execute("request-time-off", {}, "token")

    assert calls == 1
    assert str(excinfo.value) == "workday returned HTTP 503"


@pytest.mark.asyncio
async def test_http_connector_surfaces_remote_errors_and_transport_failures() -> None:
    async def remote_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"message": "employee not found"}})

    async def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    settings = HttpConnectorSettings(base_url="http://workday.test")
    async with httpx.AsyncClient(transport=httpx.MockTransport(remote_error), base_url="http://workday.test") as client:
        with pytest.raises(ConnectorError, match="employee not found"):
            await HttpConnector("workday", settings, client=client).execute("request-time-off", {}, "token")

    async with httpx.AsyncClient(transport=httpx.MockTransport(broken), base_url="http://workday.test") as client:
        with pytest.raises(ConnectorError, match="request failed"):
            await HttpConnector("workday", settings, client=client).execute("request-time-off", {}, "token")
