"""
Tasker Event Bus

Optional observer for the interpretation pipeline. The pipeline itself stays
free of side effects; callers that want telemetry (UI toasts, socket pushes,
metrics) subscribe here instead.

Usage:
    from tasker.events import EventBus, Event

    bus = EventBus()

    async def on_clarify(event: Event):
        await socket.send_json(event.payload)

    bus.subscribe("interpret.clarification_requested", on_clarify)
    interpreter = VoiceInterpreter(gateway, event_bus=bus)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

# Names emitted by tasker.voice
INTERPRET_COMPLETED = "interpret.completed"
INTERPRET_CLARIFICATION_REQUESTED = "interpret.clarification_requested"
INTERPRET_FALLBACK = "interpret.fallback"
INTERPRET_DEGRADED = "interpret.degraded"
CLARIFICATION_OPENED = "clarification.opened"
CLARIFICATION_RESOLVED = "clarification.resolved"


@dataclass
class Event:
    """An event that can be emitted and handled."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: str(uuid4()))

    def __str__(self) -> str:
        return f"Event({self.name}, id={self.event_id[:8]})"


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """
    Async pub/sub dispatcher.

    - Multiple handlers per event
    - Wildcard subscriptions ("interpret.*", "*")
    - Per-handler timeout
    - Error isolation: a failing handler never reaches the emitter
    """

    def __init__(self, handler_timeout: float = 5.0):
        self._handlers: dict[str, list[EventHandler]] = {}
        self._handler_timeout = handler_timeout

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Subscribe a handler. Use a ".*" suffix or "*" for wildcards."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug("handler_subscribed", event_name=event_name, handler=handler.__name__)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> bool:
        """Returns True if the handler was found and removed."""
        try:
            self._handlers.get(event_name, []).remove(handler)
        except ValueError:
            return False
        logger.debug("handler_unsubscribed", event_name=event_name, handler=handler.__name__)
        return True

    def _get_handlers(self, event_name: str) -> list[EventHandler]:
        """All handlers matching an event name, including wildcards."""
        handlers: list[EventHandler] = list(self._handlers.get(event_name, []))

        parts = event_name.split(".")
        for i in range(len(parts)):
            wildcard = ".".join(parts[: i + 1]) + ".*"
            handlers.extend(self._handlers.get(wildcard, []))

        handlers.extend(self._handlers.get("*", []))
        return handlers

    async def emit(self, event_name: str, payload: dict[str, Any] | None = None) -> Event:
        """Dispatch an event to every matching handler, in subscription order."""
        ev = Event(name=event_name, payload=payload or {})

        for handler in self._get_handlers(ev.name):
            try:
                await asyncio.wait_for(handler(ev), timeout=self._handler_timeout)
            except asyncio.TimeoutError:
                logger.error(
                    "handler_timeout",
                    event_obj=str(ev),
                    handler=handler.__name__,
                    timeout=self._handler_timeout,
                )
            except Exception as e:
                logger.error(
                    "handler_error",
                    event_obj=str(ev),
                    handler=handler.__name__,
                    error=str(e),
                    exc_info=True,
                )

        return ev
