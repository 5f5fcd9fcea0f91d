"""Outcome events and the publish/subscribe channel that delivers them.

Subscribe per event type:
    bus = EventBus()
    bus.subscribe(GestureFound, lambda e: print(e.template.name))

Or use the decorator API:
    @bus.on(HandTooClose)
    def warn(event):
        print("Move your hand back")

Handlers run synchronously on the publishing thread (sensor callback or
detection tick), so they should return quickly.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Type, TypeVar

from fingerspelling.observation import HandObservation
from fingerspelling.templates import GestureTemplate

logger = logging.getLogger("fingerspelling.events")


@dataclass(frozen=True)
class DetectionEvent:
    """Base class for engine outcome events."""
    timestamp: float = field(default_factory=time.monotonic, kw_only=True)


@dataclass(frozen=True)
class HandFound(DetectionEvent):
    """A new observation contains a hand."""
    observation: HandObservation


@dataclass(frozen=True)
class NoHandFound(DetectionEvent):
    """No hand is present (new empty reading, or nothing to classify at tick time)."""


@dataclass(frozen=True)
class GestureFound(DetectionEvent):
    """A template matched the current hand within the acceptance threshold."""
    template: GestureTemplate
    distance: float

    @property
    def name(self) -> str:
        return self.template.name


@dataclass(frozen=True)
class HandTooClose(DetectionEvent):
    """The observed hand's depth extent reached the closeness threshold."""
    depth: float = 0.0


E = TypeVar("E", bound=DetectionEvent)
Handler = Callable[[DetectionEvent], None]


class EventBus:
    """Dispatches outcome events to handlers registered per event type.

    A handler subscribed to DetectionEvent receives every event. A handler
    that raises is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register `handler` for `event_type`. Returns an unsubscribe callable."""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe():
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: type, handler: Callable) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def on(self, event_type: Type[E]):
        """Decorator to register a handler for `event_type`."""
        def decorator(fn: Callable[[E], None]):
            self.subscribe(event_type, fn)
            return fn
        return decorator

    def publish(self, event: DetectionEvent) -> int:
        """Deliver `event` to its handlers. Returns the number of handlers run."""
        with self._lock:
            handlers = [
                h
                for event_type, hs in self._handlers.items()
                if isinstance(event, event_type)
                for h in hs
            ]

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Handler %s failed on %s: %s",
                    getattr(handler, "__name__", handler), type(event).__name__, e,
                )
        return len(handlers)

    def handler_count(self, event_type: Optional[type] = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(hs) for hs in self._handlers.values())
            return len(self._handlers.get(event_type, []))

    def clear(self):
        with self._lock:
            self._handlers.clear()
