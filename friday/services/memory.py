from __future__ import annotations

import asyncio
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import uuid4, uuid5

from ..core.config import MemorySettings
from ..core.logging import get_logger
from ..schemas.orchestrator import CallerContext, CallerProfile, ConversationEntry

logger = get_logger(name=__name__)

_PROFILE_FIELDS = frozenset(CallerProfile.model_fields) - {"id"}


@runtime_checkable
class ContextStore(Protocol):
    """Per-caller session state: profile, recent activity, preferences and history."""

    async def get_context(self, caller_id: str) -> CallerContext:
        ...

    async def add_activity(self, caller_id: str, text: str) -> None:
        ...

    async def update_preferences(self, caller_id: str, patch: Mapping[str, Any]) -> CallerContext:
        ...

    async def update_profile(self, caller_id: str, patch: Mapping[str, Any]) -> CallerContext:
        ...

    async def set_session(self, caller_id: str, session_id: str) -> None:
        ...

    async def add_message(
        self,
        caller_id: str,
        role: str,
        content: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        ...

    async def get_history(self, caller_id: str, limit: int | None = None) -> list[ConversationEntry]:
        ...

    async def clear(self, caller_id: str) -> None:
        ...


class InMemoryContextStore:
    """Reference context store.

    A caller's context is stored on its first write; reads for an unknown
    caller return a default context without storing anything. Mutations are
    serialized per caller through a fixed set of striped locks, so the lock
    table never grows with the number of callers.
    """

    def __init__(self, *, settings: MemorySettings | None = None) -> None:
        self._settings = settings or MemorySettings()
        self._contexts: dict[str, CallerContext] = {}
        self._locks = tuple(asyncio.Lock() for _ in range(self._settings.lock_stripes))
        self._namespace = uuid4()
        self._generation = 0

    def _lock_for(self, caller_id: str) -> asyncio.Lock:
        return self._locks[hash(caller_id) % len(self._locks)]

    def _default_session_id(self, caller_id: str) -> str:
        # stable for unstored callers until the next clear()
        return f"session-{uuid5(self._namespace, f'{caller_id}:{self._generation}').hex}"

    def _new_context(self, caller_id: str) -> CallerContext:
        return CallerContext(
            caller_id=caller_id,
            session_id=self._default_session_id(caller_id),
            profile=CallerProfile(id=caller_id),
            preferences=dict(self._settings.default_preferences),
        )

    def _ensure(self, caller_id: str) -> CallerContext:
        context = self._contexts.get(caller_id)
        if context is None:
            context = self._new_context(caller_id)
            self._contexts[caller_id] = context
            logger.debug("caller_context_created", caller_id=caller_id)
        return context

    async def get_context(self, caller_id: str) -> CallerContext:
        async with self._lock_for(caller_id):
            context = self._contexts.get(caller_id)
            if context is None:
                return self._new_context(caller_id)
            return context.model_copy(deep=True)

    async def add_activity(self, caller_id: str, text: str) -> None:
        async with self._lock_for(caller_id):
            context = self._ensure(caller_id)
            context.recent_activity.insert(0, text)
            del context.recent_activity[self._settings.max_recent_activity :]

    async def update_preferences(self, caller_id: str, patch: Mapping[str, Any]) -> CallerContext:
        async with self._lock_for(caller_id):
            context = self._ensure(caller_id)
            context.preferences.update(patch)
            return context.model_copy(deep=True)

    async def update_profile(self, caller_id: str, patch: Mapping[str, Any]) -> CallerContext:
        async with self._lock_for(caller_id):
            context = self._ensure(caller_id)
            updates = {key: value for key, value in patch.items() if key in _PROFILE_FIELDS}
            context.profile = context.profile.model_copy(update=updates)
            return context.model_copy(deep=True)

    async def set_session(self, caller_id: str, session_id: str) -> None:
        async with self._lock_for(caller_id):
            self._ensure(caller_id).session_id = session_id

    async def add_message(
        self,
        caller_id: str,
        role: str,
        content: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        entry = ConversationEntry(role=role, content=content, metadata=dict(metadata or {}))  # type: ignore[arg-type]
        async with self._lock_for(caller_id):
            history = self._ensure(caller_id).history
            history.append(entry)
            overflow = len(history) - self._settings.max_history
            if overflow > 0:
                del history[:overflow]

    async def get_history(self, caller_id: str, limit: int | None = None) -> list[ConversationEntry]:
        async with self._lock_for(caller_id):
            context = self._contexts.get(caller_id)
            history = context.history if context is not None else []
            selected = history[-limit:] if limit else history
            return [entry.model_copy(deep=True) for entry in selected]

    async def clear(self, caller_id: str) -> None:
        async with self._lock_for(caller_id):
            removed = self._contexts.pop(caller_id, None)
            self._generation += 1
        if removed is not None:
            logger.info("caller_context_cleared", caller_id=caller_id)

    def list_callers(self) -> list[str]:
        return list(self._contexts)


__all__ = ["ContextStore", "InMemoryContextStore"]
