"""Fetch path behind the notification bell: cache, throttle, sources, merge."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from skillsync.domain.entities import Notification, NotificationType
from skillsync.infrastructure.local_queue import LocalDurableQueue

from .cache import NotificationCache
from .delivery import DeliveryClient, NotificationStore, RemoteNotificationApi
from .merge import combine, normalize_remote

logger = logging.getLogger(__name__)

UserIdProvider = Callable[[], Awaitable[Optional[str]]]

DEFAULT_THROTTLE = 120.0


class NotificationFeed:
    """Produce the merged notification view of the current user.

    ``fetch`` never raises. Unforced calls are answered from a fresh cache,
    or skipped entirely inside the throttle window; forced calls always go
    to the sources. Sources are tried in order: remote API, direct store,
    then local records alone.
    """

    def __init__(
        self,
        *,
        user_id_provider: UserIdProvider,
        api: Optional[RemoteNotificationApi],
        store: Optional[NotificationStore],
        local_queue: LocalDurableQueue,
        cache: NotificationCache,
        delivery: DeliveryClient,
        throttle: float = DEFAULT_THROTTLE,
        list_limit: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._user_id_provider = user_id_provider
        self._api = api
        self._store = store
        self._local_queue = local_queue
        self._cache = cache
        self._delivery = delivery
        self._throttle = throttle
        self._list_limit = list_limit
        self._clock = clock
        self._notifications: list[Notification] = []
        self._user_id: str | None = None
        self._last_fetched = 0.0
        self.loading = False

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def unread_count(self) -> int:
        return sum(1 for notification in self._notifications if not notification.is_read)

    def use_user(self, user_id: str) -> None:
        """Pin the feed to ``user_id`` instead of asking the identity provider."""

        if user_id != self._user_id:
            self._user_id = user_id
            self._last_fetched = 0.0

    async def fetch(self, force: bool = False) -> list[Notification]:
        user_id = await self._resolve_user_id()
        if not force and user_id and self._cache.is_valid(user_id):
            cached = self._cache.get_cached_notifications()
            if cached:
                logger.debug("Using cached notifications data")
                self._notifications = cached
                self._user_id = user_id
                return self.notifications

        now = self._clock()
        if not force and self._last_fetched > 0 and now - self._last_fetched < self._throttle:
            logger.debug("Skipping notification fetch - throttled")
            return self.notifications

        if not user_id:
            logger.info("No user id available to fetch notifications")
            return self.notifications

        self.loading = True
        try:
            self._last_fetched = now
            self._user_id = user_id
            self._notifications = await self._load(user_id)
            self._cache.set(self._notifications, user_id)
            return self.notifications
        except Exception:
            logger.exception("Error fetching notifications")
            return self.notifications
        finally:
            self.loading = False

    async def open_view(self) -> list[Notification]:
        """Refresh on explicit user interaction, bypassing cache and throttle."""

        return await self.fetch(force=True)

    async def mark_as_read(self, notification_id: str) -> bool:
        result = await self._delivery.mark_as_read(notification_id)
        self._replace_read(lambda notification: notification.id == notification_id)
        return result

    async def mark_all_as_read(self) -> bool:
        if not self._user_id:
            return False
        result = await self._delivery.mark_all_as_read(self._user_id)
        self._replace_read(lambda notification: True)
        return result

    @staticmethod
    def link_for(notification: Notification) -> str:
        """Return the navigation target of ``notification``."""

        if notification.type is NotificationType.CONNECTION_REQUEST:
            return "/profile?tab=connections"
        if notification.type is NotificationType.CONNECTION_ACCEPTED:
            if notification.reference_id:
                return f"/users/{notification.reference_id}"
            return "/profile?tab=connections"
        if notification.type is NotificationType.MESSAGE:
            if notification.reference_id:
                return f"/messages/{notification.reference_id}"
            return "/messages"
        return "/notifications"

    async def _load(self, user_id: str) -> list[Notification]:
        if self._api is not None:
            try:
                rows = await self._api.list_for_user(user_id)
                return combine(normalize_remote(rows), user_id, self._local_queue)
            except Exception as exc:
                logger.error("API error fetching notifications for user %s: %s", user_id, exc)

        if self._store is not None:
            try:
                remote = await self._store.select_for_user(user_id, limit=self._list_limit)
                return combine(list(remote), user_id, self._local_queue)
            except Exception:
                logger.exception("Database error fetching notifications for user %s", user_id)

        return self._local_queue.list_local_notifications(user_id)

    async def _resolve_user_id(self) -> str | None:
        if self._user_id:
            return self._user_id
        try:
            return await self._user_id_provider()
        except Exception:
            logger.exception("Failed to resolve the current user")
            return None

    def _replace_read(self, predicate: Callable[[Notification], bool]) -> None:
        updated: list[Notification] = []
        for notification in self._notifications:
            if predicate(notification) and not notification.is_read:
                notification = _as_read(notification)
            updated.append(notification)
        self._notifications = updated
        if self._user_id:
            self._cache.set(updated, self._user_id)


def _as_read(notification: Notification) -> Notification:
    return replace(notification, is_read=True)


__all__ = ["NotificationFeed"]
