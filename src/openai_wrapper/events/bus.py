"""Async pub/sub bus for completion lifecycle events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from openai_wrapper.types import CompletionEvent, EventType

_logger = logging.getLogger(__name__)

WILDCARD = "*"

# Sync or async callable taking a CompletionEvent
Handler = Callable[[CompletionEvent], Any]


class EventBus:
    """Fan out ``CompletionEvent``s to subscribed handlers.

    Handlers subscribe to one ``EventType`` or to ``"*"``.  A failing handler
    is logged and never breaks the completion that emitted the event.
    The most recent *max_history* events are kept for inspection.
    """

    def __init__(self, max_history: int = 200) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._history: list[CompletionEvent] = []
        self._max_history = max_history

    def subscribe(self, event_type: EventType | str, handler: Handler) -> Handler:
        """Register *handler*; returns it so the call can be undone later."""
        self._handlers.setdefault(self._key(event_type), []).append(handler)
        return handler

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        handlers = self._handlers.get(self._key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: CompletionEvent) -> None:
        self._history.append(event)
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]

        handlers = self._handlers.get(self._key(event.type), []) + self._handlers.get(WILDCARD, [])
        if handlers:
            await asyncio.gather(
                *(self._call_handler(h, event) for h in handlers),
                return_exceptions=True,
            )

    @property
    def history(self) -> list[CompletionEvent]:
        return list(self._history)

    def events_of(self, event_type: EventType) -> list[CompletionEvent]:
        """Recorded events of one type, oldest first."""
        return [e for e in self._history if e.type is event_type]

    def clear(self) -> None:
        self._handlers.clear()
        self._history.clear()

    @staticmethod
    def _key(event_type: EventType | str) -> str:
        return event_type.value if isinstance(event_type, EventType) else str(event_type)

    @staticmethod
    async def _call_handler(handler: Handler, event: CompletionEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _logger.exception(
                "Event handler %s failed for %s",
                getattr(handler, "__name__", handler), event.type.value,
            )
