"""Event bus for operation diagnostics.

Handlers never break the publisher: failures are logged and swallowed.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from archmod.core.logging import get_logger

_logger = get_logger(__name__)

EventHandler = Callable[[str, dict[str, Any]], None]


class EventBus:
    """Simple pub/sub keyed by event name.

    Example:
        bus = EventBus()

        def on_end(event, data):
            print(data["data"]["status"])

        bus.subscribe("operation.end", on_end)
        bus.publish("operation.end", envelope)
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._all_subscribers: list[EventHandler] = []

    def subscribe(self, event: str, callback: EventHandler) -> None:
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: EventHandler) -> None:
        handlers = self._subscribers.get(event)
        if handlers and callback in handlers:
            handlers.remove(callback)

    def subscribe_all(self, callback: EventHandler) -> None:
        self._all_subscribers.append(callback)

    def publish(self, event: str, data: dict[str, Any] | None = None) -> None:
        """Deliver data to the event's handlers, then to catch-all handlers."""
        payload = data or {}
        handlers = list(self._subscribers.get(event, [])) + list(self._all_subscribers)
        for cb in handlers:
            try:
                cb(event, payload)
            except Exception as e:
                _logger.error(
                    f"Error in event handler for '{event}' (callback={cb}): "
                    f"{type(e).__name__}: {e}"
                )

    def clear(self) -> None:
        self._subscribers.clear()
        self._all_subscribers.clear()


_global_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus
