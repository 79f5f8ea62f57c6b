"""Forward store change events to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging

from anyio import from_thread

from .change_feed import ChangeEvent, InProcessChangeFeed, SubscriptionHandle
from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Schedule change events on the loop that owns the websockets.

    Repository writes run in FastAPI's worker threads, so ``dispatch`` is
    usually called off the loop and hops back through ``anyio.from_thread``.
    """

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def dispatch(self, change: ChangeEvent) -> None:
        if not change.record.get("user_id"):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.push_change, change)
            except RuntimeError:
                logger.warning(
                    "No event loop available to push %s change to user %s",
                    change.event,
                    change.record.get("user_id"),
                )
        else:
            loop.create_task(self._manager.push_change(change))

    def attach(self, feed: InProcessChangeFeed, table: str) -> SubscriptionHandle:
        """Subscribe this publisher to every change of ``table``."""

        return feed.subscribe(table, {}, self.dispatch)


server_change_feed = InProcessChangeFeed()
notification_publisher = NotificationPublisher(notification_manager)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "server_change_feed",
]
