from __future__ import annotations

import asyncio
import itertools
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from ..core import metrics
from ..core.config import AuditSettings
from ..core.logging import get_logger
from ..schemas.orchestrator import AuditRecord

logger = get_logger(name=__name__)

TimestampFactory = Callable[[], datetime]


@runtime_checkable
class AuditStore(Protocol):
    """Append-only storage for compliance and execution decisions."""

    async def append(
        self,
        caller_id: str,
        action: str,
        success: bool,
        detail: Mapping[str, Any] | None = None,
    ) -> AuditRecord:
        ...

    async def query(self, caller_id: str | None = None, limit: int | None = None) -> list[AuditRecord]:
        ...

    async def count_since(self, caller_id: str, action: str, since: datetime) -> int:
        ...


class InMemoryAuditStore:
    """Process-local audit log. Records are never mutated or removed."""

    def __init__(self, *, settings: AuditSettings | None = None, now: TimestampFactory | None = None) -> None:
        self._settings = settings or AuditSettings()
        self._now: TimestampFactory = now or (lambda: datetime.now(timezone.utc))
        self._records: list[AuditRecord] = []
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    def _next_id(self, timestamp: datetime) -> str:
        return f"audit-{next(self._sequence)}-{int(timestamp.timestamp() * 1000)}-{secrets.token_hex(4)}"

    async def append(
        self,
        caller_id: str,
        action: str,
        success: bool,
        detail: Mapping[str, Any] | None = None,
    ) -> AuditRecord:
        async with self._lock:
            timestamp = self._now()
            record = AuditRecord(
                id=self._next_id(timestamp),
                timestamp=timestamp,
                caller_id=caller_id,
                action=action,
                success=success,
                detail=dict(detail or {}),
            )
            self._records.append(record)

        metrics.increment_audit_record(action=action, success=success)
        logger.info(
            "audit_record",
            audit_id=record.id,
            caller_id=caller_id,
            action=action,
            success=success,
            detail=record.detail,
        )
        return record

    async def query(self, caller_id: str | None = None, limit: int | None = None) -> list[AuditRecord]:
        limit = self._clamp_limit(limit)
        async with self._lock:
            snapshot = list(self._records)
        results: list[AuditRecord] = []
        for record in reversed(snapshot):
            if caller_id is not None and record.caller_id != caller_id:
                continue
            results.append(record)
            if len(results) >= limit:
                break
        return results

    async def count_since(self, caller_id: str, action: str, since: datetime) -> int:
        async with self._lock:
            count = 0
            for record in reversed(self._records):
                if record.timestamp <= since:
                    # records are appended in timestamp order
                    break
                if record.caller_id == caller_id and record.action == action:
                    count += 1
            return count

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._settings.default_query_limit
        return max(1, min(int(limit), self._settings.max_query_limit))


__all__ = ["AuditStore", "InMemoryAuditStore"]
