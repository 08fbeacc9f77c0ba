from __future__ import annotations

import re
from typing import Dict, Iterable

from ..core.logging import get_logger
from .base import BaseConnector, ConnectorNotFoundError

__all__ = ["normalize_connector_name", "ConnectorRegistry"]

logger = get_logger(name=__name__)

_NAME_PATTERN = re.compile(r"[\\/\s_]+")


def normalize_connector_name(name: str) -> str:
    """Return the lookup key used for endpoint references ("Custom MCP" -> "custom-mcp")."""
    if not isinstance(name, str):
        raise TypeError("Connector name must be a string")
    collapsed = _NAME_PATTERN.sub("-", name.strip())
    return collapsed.strip("-").lower()


class ConnectorRegistry:
    """Maps agent endpoint references to connector instances."""

    def __init__(self) -> None:
        self._registry: Dict[str, BaseConnector] = {}
        self._alias_index: Dict[str, str] = {}

    def register(self, connector: BaseConnector, *, name: str | None = None, aliases: Iterable[str] | None = None) -> None:
        key = normalize_connector_name(name or connector.name)
        if key in self._registry:
            logger.info("connector_replaced", connector=key)
        self._registry[key] = connector
        for alias in aliases or ():
            self._alias_index[normalize_connector_name(alias)] = key

    def unregister(self, name: str) -> None:
        key = normalize_connector_name(name)
        self._registry.pop(key, None)
        for alias, target in list(self._alias_index.items()):
            if target == key:
                del self._alias_index[alias]

    def get(self, name: str) -> BaseConnector:
        key = self._resolve_key(name)
        if key is None:
            raise ConnectorNotFoundError(f"Connector not found: {name}", connector=name)
        return self._registry[key]

    def has(self, name: str) -> bool:
        return self._resolve_key(name) is not None

    def list(self) -> list[str]:
        return sorted(self._registry)

    async def aclose(self) -> None:
        for key, connector in self._registry.items():
            try:
                await connector.aclose()
            except Exception as exc:  # pragma: no cover - shutdown errors are logged only
                logger.warning("connector_close_failed", connector=key, error=str(exc))

    def _resolve_key(self, name: str) -> str | None:
        normalized = normalize_connector_name(name)
        if normalized in self._registry:
            return normalized
        alias_key = self._alias_index.get(normalized)
        if alias_key is not None and alias_key in self._registry:
            return alias_key
        return None
