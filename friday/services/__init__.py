from .audit import AuditStore, InMemoryAuditStore
from .memory import ContextStore, InMemoryContextStore

__all__ = ["AuditStore", "ContextStore", "InMemoryAuditStore", "InMemoryContextStore"]
