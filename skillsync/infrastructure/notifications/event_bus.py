"""In-process publish/subscribe channel for notification events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], None]

NEW_NOTIFICATION = "new-notification"
LOCAL_NOTIFICATION = "local-notification"
NEW_MESSAGE = "new-message"
STORAGE_CHANGED = "storage"
NETWORK_ONLINE = "network-online"


class EventBus:
    """Dispatch payloads to the callbacks registered for a topic."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[EventCallback]] = defaultdict(list)

    def subscribe(self, topic: str, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback`` for ``topic`` and return its unsubscribe function."""

        self._listeners[topic].append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(topic)
            if listeners is None:
                return
            try:
                listeners.remove(callback)
            except ValueError:
                return
            if not listeners:
                self._listeners.pop(topic, None)

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> None:
        """Invoke every callback registered for ``topic`` with ``payload``."""

        for callback in list(self._listeners.get(topic, ())):
            try:
                callback(payload)
            except Exception:
                logger.exception("Listener for %s raised while handling an event", topic)

    def listener_count(self, topic: str | None = None) -> int:
        if topic is not None:
            return len(self._listeners.get(topic, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def clear(self, topic: str) -> None:
        self._listeners.pop(topic, None)


__all__ = [
    "EventBus",
    "EventCallback",
    "LOCAL_NOTIFICATION",
    "NETWORK_ONLINE",
    "NEW_MESSAGE",
    "NEW_NOTIFICATION",
    "STORAGE_CHANGED",
]
