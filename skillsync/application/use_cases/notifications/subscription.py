"""Keep the notification view fresh from push events, bus events and polling."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from skillsync.domain.entities import Notification
from skillsync.infrastructure.local_queue import LOCAL_NOTIFICATIONS_KEY
from skillsync.infrastructure.notifications import (
    LOCAL_NOTIFICATION,
    NEW_MESSAGE,
    NEW_NOTIFICATION,
    NOTIFICATIONS_TABLE,
    STORAGE_CHANGED,
    ChangeEvent,
    ChangeFeed,
    EventBus,
    SubscriptionHandle,
)

from .feed import NotificationFeed

logger = logging.getLogger(__name__)

NOTIFICATION_TIMESTAMP_KEY = "notification_timestamp"
_WATCHED_STORAGE_KEYS = frozenset({LOCAL_NOTIFICATIONS_KEY, NOTIFICATION_TIMESTAMP_KEY})


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"
    DEBOUNCING = "debouncing"


class RealtimeSubscriptionManager:
    """Drive refetches of a :class:`NotificationFeed` for one user.

    Push events from the change feed and bus events addressed to the user
    (new notification, local notification, new message, storage change) share
    one debounce window, so a burst of them ends in a single forced refetch.
    The bus covers local writes the change feed cannot see. A polling task
    covers missed pushes; a failing change feed leaves the manager on polling
    only.
    """

    def __init__(
        self,
        *,
        feed: NotificationFeed,
        change_feed: Optional[ChangeFeed],
        event_bus: EventBus,
        debounce: float = 1.0,
        poll_interval: float = 300.0,
        messaging_poll_interval: float = 20.0,
    ) -> None:
        self._feed = feed
        self._change_feed = change_feed
        self._event_bus = event_bus
        self._debounce_delay = debounce
        self._poll_interval = poll_interval
        self._messaging_poll_interval = messaging_poll_interval

        self._state = SubscriptionState.UNSUBSCRIBED
        self._user_id: str | None = None
        self._in_messaging_view = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._push_handle: Optional[SubscriptionHandle] = None
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._poll_task: Optional[asyncio.Task[None]] = None
        self._bus_unsubscribers: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def push_connected(self) -> bool:
        return self._push_handle is not None

    @property
    def poll_interval(self) -> float:
        if self._in_messaging_view:
            return self._messaging_poll_interval
        return self._poll_interval

    async def start(self, user_id: str, *, in_messaging_view: bool = False) -> None:
        if self._state is not SubscriptionState.UNSUBSCRIBED:
            await self.stop()

        self._loop = asyncio.get_running_loop()
        self._user_id = user_id
        self._in_messaging_view = in_messaging_view
        self._state = SubscriptionState.SUBSCRIBING
        self._feed.use_user(user_id)
        self._spawn(self._feed.fetch())

        if self._change_feed is not None:
            try:
                self._push_handle = self._change_feed.subscribe(
                    NOTIFICATIONS_TABLE, {"user_id": user_id}, self._on_push
                )
            except Exception:
                logger.exception(
                    "Error setting up realtime subscription for user %s; polling only", user_id
                )
                self._push_handle = None

        self._bus_unsubscribers = [
            self._event_bus.subscribe(NEW_NOTIFICATION, self._on_notification_event),
            self._event_bus.subscribe(LOCAL_NOTIFICATION, self._on_notification_event),
            self._event_bus.subscribe(NEW_MESSAGE, self._on_message_event),
            self._event_bus.subscribe(STORAGE_CHANGED, self._on_storage_event),
        ]
        self._state = SubscriptionState.SUBSCRIBED
        self._restart_polling()
        logger.info(
            "Notification subscription active for user %s (push=%s, poll=%ss)",
            user_id,
            self.push_connected,
            self.poll_interval,
        )

    async def stop(self) -> None:
        """Release the push subscription, bus listeners, timers and in-flight fetches."""

        if self._push_handle is not None and self._change_feed is not None:
            try:
                self._change_feed.unsubscribe(self._push_handle)
            except Exception:
                logger.exception("Error removing realtime subscription")
        self._push_handle = None

        for unsubscribe in self._bus_unsubscribers:
            unsubscribe()
        self._bus_unsubscribers = []

        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

        pending = list(self._tasks)
        if self._poll_task is not None:
            pending.append(self._poll_task)
            self._poll_task = None
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        self._state = SubscriptionState.UNSUBSCRIBED
        self._user_id = None

    def set_messaging_view(self, active: bool) -> None:
        """Switch between the regular and the messaging polling interval."""

        if active == self._in_messaging_view:
            return
        self._in_messaging_view = active
        if self._state is not SubscriptionState.UNSUBSCRIBED:
            self._restart_polling()

    async def wait_idle(self) -> None:
        """Wait for refetches that are already running."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_push(self, change: ChangeEvent) -> None:
        logger.debug("Realtime notification %s for user %s", change.event, self._user_id)
        self._call_in_loop(self._debounce)

    def _on_notification_event(self, payload: Any) -> None:
        if self._user_id and _addressed_to(payload, self._user_id):
            self._call_in_loop(self._debounce)

    def _on_message_event(self, payload: Any) -> None:
        if self._user_id and _field(payload, "recipientId") == self._user_id:
            self._call_in_loop(self._debounce)

    def _on_storage_event(self, key: Any) -> None:
        if self._user_id and key in _WATCHED_STORAGE_KEYS:
            self._call_in_loop(self._debounce)

    def refresh(self) -> None:
        """Schedule a forced refetch."""

        if self._state in (SubscriptionState.SUBSCRIBED, SubscriptionState.DEBOUNCING):
            self._spawn(self._feed.fetch(force=True))

    def _debounce(self) -> None:
        if self._state not in (SubscriptionState.SUBSCRIBED, SubscriptionState.DEBOUNCING):
            return
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._state = SubscriptionState.DEBOUNCING
        self._debounce_handle = self._loop.call_later(self._debounce_delay, self._flush)

    def _flush(self) -> None:
        self._debounce_handle = None
        if self._state is not SubscriptionState.DEBOUNCING:
            return
        self._state = SubscriptionState.SUBSCRIBED
        self.refresh()

    def _restart_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
        self._poll_task = self._loop.create_task(self._poll(self.poll_interval))

    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(self._feed.fetch())

    def _spawn(self, coroutine: Awaitable[Any]) -> None:
        task = self._loop.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _call_in_loop(self, callback: Callable[[], None]) -> None:
        if self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            callback()
        else:
            self._loop.call_soon_threadsafe(callback)


def _field(payload: Any, name: str) -> Any:
    if isinstance(payload, dict):
        return payload.get(name)
    return getattr(payload, name, None)


def _addressed_to(payload: Any, user_id: str) -> bool:
    if isinstance(payload, Notification):
        return payload.addressed_to(user_id)
    return _field(payload, "user_id") == user_id or _field(payload, "recipient_id") == user_id


__all__ = ["NOTIFICATION_TIMESTAMP_KEY", "RealtimeSubscriptionManager", "SubscriptionState"]
