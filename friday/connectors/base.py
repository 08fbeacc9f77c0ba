from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, Mapping, Union

from ..core import metrics

ConnectorResult = Mapping[str, Any]
ActionFunc = Callable[[Mapping[str, Any], str], Union[Any, Awaitable[Any]]]


class ConnectorError(RuntimeError):
    """Raised by a connector when an external call fails."""

    def __init__(self, message: str, *, connector: str | None = None, action: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.connector = connector
        self.action = action


class ConnectorNotFoundError(ConnectorError):
    """Raised when an endpoint reference does not resolve to a registered connector."""


class BaseConnector(ABC):
    """Uniform contract every external system integration implements."""

    name: ClassVar[str]
    kind: ClassVar[str] = "custom"

    @abstractmethod
    async def execute(self, action: str, params: Mapping[str, Any], access_token: str) -> ConnectorResult:
        ...

    async def aclose(self) -> None:
        return None


class LocalConnector(BaseConnector):
    """Connector served in-process by a table of action handlers.

    Handlers receive ``(params, access_token)`` and may be sync or async.
    """

    def __init__(self) -> None:
        self._actions: dict[str, ActionFunc] = {}
        self._register_default_actions()

    def _register_default_actions(self) -> None:
        return None

    def register_action(self, action: str, handler: ActionFunc) -> None:
        self._actions[action] = handler

    def actions(self) -> list[str]:
        return sorted(self._actions)

    async def execute(self, action: str, params: Mapping[str, Any], access_token: str) -> ConnectorResult:
        handler = self._actions.get(action)
        if handler is None:
            metrics.increment_connector_request(connector=self.name, outcome="unknown_action")
            raise ConnectorError(f"Unknown action: {action}", connector=self.name, action=action)
        try:
            result = handler(params, access_token)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            metrics.increment_connector_request(connector=self.name, outcome="error")
            raise
        metrics.increment_connector_request(connector=self.name, outcome="success")
        if not isinstance(result, Mapping):
            return {"data": result}
        return result


__all__ = [
    "ActionFunc",
    "BaseConnector",
    "ConnectorError",
    "ConnectorNotFoundError",
    "ConnectorResult",
    "LocalConnector",
]
