from __future__ import annotations

import time
from typing import Any, Mapping

import httpx

from ..core import metrics
from ..core.config import HttpConnectorSettings
from ..core.logging import get_logger
from .base import BaseConnector, ConnectorError, ConnectorResult

logger = get_logger(name=__name__)


class HttpConnector(BaseConnector):
    """Dispatches actions to a remote tool endpoint as JSON-RPC style POSTs.

    Every call posts ``{"method": "<connector>.<action>", "params": {...}}`` with the
    caller's token as a bearer credential. There are no retries: a single failed
    attempt surfaces as :class:`ConnectorError`.
    """

    kind = "http"

    def __init__(
        self,
        name: str,
        settings: HttpConnectorSettings,
        *,
        client: httpx.AsyncClient | None = None,
        path: str = "/rpc",
    ) -> None:
        self.name = name  # type: ignore[misc]
        self._settings = settings
        self._path = path
        self._owns_client = client is None and settings.base_url is not None
        if client is not None:
            self._client: httpx.AsyncClient | None = client
        elif settings.base_url:
            self._client = httpx.AsyncClient(
                base_url=settings.base_url.rstrip("/"),
                timeout=httpx.Timeout(settings.timeout_seconds),
                verify=settings.verify_ssl,
            )
        else:
            self._client = None

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    async def execute(self, action: str, params: Mapping[str, Any], access_token: str) -> ConnectorResult:
        if self._client is None:
            metrics.increment_connector_request(connector=self.name, outcome="not_configured")
            raise ConnectorError(
                f"{self.name} credentials not configured",
                connector=self.name,
                action=action,
            )

        headers = {"Authorization": f"Bearer {access_token}"}
        if self._settings.api_key:
            headers[self._settings.api_key_header] = self._settings.api_key
        payload = {"method": f"{self.name}.{action}", "params": dict(params)}

        start = time.perf_counter()
        try:
            response = await self._client.post(self._path, json=payload, headers=headers)
        except httpx.RequestError as exc:
            metrics.increment_connector_request(connector=self.name, outcome="transport_error")
            logger.warning(
                "connector_request_failed",
                connector=self.name,
                action=action,
                error=str(exc),
            )
            raise ConnectorError(f"{self.name} request failed: {exc}", connector=self.name, action=action) from exc

        latency_ms = (time.perf_counter() - start) * 1000
        if response.is_error:
            metrics.increment_connector_request(connector=self.name, outcome="http_error")
            logger.warning(
                "connector_request_rejected",
                connector=self.name,
                action=action,
                status=response.status_code,
                latency_ms=latency_ms,
            )
            raise ConnectorError(
                f"{self.name} returned HTTP {response.status_code}",
                connector=self.name,
                action=action,
            )

        try:
            body = response.json()
        except ValueError as exc:
            metrics.increment_connector_request(connector=self.name, outcome="invalid_payload")
            raise ConnectorError(f"{self.name} returned a non-JSON body", connector=self.name, action=action) from exc

        if isinstance(body, Mapping) and body.get("error"):
            metrics.increment_connector_request(connector=self.name, outcome="remote_error")
            error = body["error"]
            message = error.get("message") if isinstance(error, Mapping) else str(error)
            raise ConnectorError(f"{self.name} error: {message}", connector=self.name, action=action)

        metrics.increment_connector_request(connector=self.name, outcome="success")
        logger.debug("connector_request_completed", connector=self.name, action=action, latency_ms=latency_ms)
        if isinstance(body, Mapping) and "result" in body:
            result = body["result"]
            return result if isinstance(result, Mapping) else {"data": result}
        return body if isinstance(body, Mapping) else {"data": body}


__all__ = ["HttpConnector"]
