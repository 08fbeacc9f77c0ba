from .base import BaseConnector, ConnectorError, ConnectorNotFoundError, LocalConnector
from .graph import GraphConnector
from .http import HttpConnector
from .registry import ConnectorRegistry, normalize_connector_name
from .workspace import WorkspaceToolConnector

__all__ = [
    "BaseConnector",
    "ConnectorError",
    "ConnectorNotFoundError",
    "ConnectorRegistry",
    "GraphConnector",
    "HttpConnector",
    "LocalConnector",
    "WorkspaceToolConnector",
    "normalize_connector_name",
]
