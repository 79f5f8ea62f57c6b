"""Composition root for the client side of the notification system."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx
from sqlalchemy.orm import Session

from skillsync.application.use_cases.notifications import (
    DeliveryClient,
    NotificationCache,
    NotificationFeed,
    PendingDeliveryMonitor,
    PendingProcessResult,
    RealtimeSubscriptionManager,
    RetryEngine,
    notify_connection_accepted,
    notify_connection_request,
    notify_new_message,
)
from skillsync.config import Settings, get_settings
from skillsync.domain.entities import (
    DeliveryRequest,
    Notification,
    NotificationType,
    validate_notification_type,
)
from skillsync.infrastructure.identity import CachedIdentityProvider, IdentityResolver
from skillsync.infrastructure.local_queue import LocalDurableQueue
from skillsync.infrastructure.notifications import (
    ChangeFeed,
    EventBus,
    InProcessChangeFeed,
    NotificationApiClient,
)
from skillsync.infrastructure.repositories import DirectNotificationStore
from skillsync.infrastructure.storage import KeyValueStorage, build_storage

logger = logging.getLogger(__name__)


@dataclass
class NotificationClient:
    """Wire the delivery, retry, feed and subscription components together."""

    settings: Settings
    storage: KeyValueStorage
    event_bus: EventBus
    local_queue: LocalDurableQueue
    identity: CachedIdentityProvider
    api: NotificationApiClient
    store: Optional[DirectNotificationStore]
    change_feed: Optional[ChangeFeed]
    delivery: DeliveryClient
    engine: RetryEngine
    monitor: PendingDeliveryMonitor
    cache: NotificationCache
    feed: NotificationFeed
    subscriptions: RealtimeSubscriptionManager

    @classmethod
    def create(
        cls,
        identity_resolver: IdentityResolver,
        settings: Settings | None = None,
        *,
        storage: KeyValueStorage | None = None,
        http_client: httpx.AsyncClient | None = None,
        session_factory: Callable[[], Session] | None = None,
        change_feed: ChangeFeed | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "NotificationClient":
        """Build a client from ``settings``.

        ``session_factory`` enables the direct store fallback; ``change_feed``
        enables push updates. Without them the client relies on the remote
        API, local storage and polling. Writes made by this client are
        announced through ``LOCAL_NOTIFICATION``; a host sharing ``storage``
        with other processes publishes ``STORAGE_CHANGED`` on ``event_bus``
        when it notices their writes.
        """

        settings = settings or get_settings()
        event_bus = EventBus()
        if storage is None:
            storage = build_storage(settings.local_storage_path)

        local_queue = LocalDurableQueue(
            storage, event_bus=event_bus, id_prefix=settings.local_id_prefix
        )
        identity = CachedIdentityProvider(identity_resolver, storage)
        api = NotificationApiClient(
            settings.api_base_url,
            timeout=settings.api_timeout_seconds,
            http_client=http_client,
        )
        store = None
        if session_factory is not None:
            feed_sink = change_feed if isinstance(change_feed, InProcessChangeFeed) else None
            store = DirectNotificationStore(session_factory, change_feed=feed_sink)

        delivery = DeliveryClient(api=api, store=store, local_queue=local_queue)
        engine = RetryEngine(
            delivery.deliver_request,
            local_queue,
            max_retries=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay_seconds,
            pending_max_retries=settings.pending_retry_max_attempts,
            pending_expiry_ms=int(settings.pending_expiry_seconds * 1000),
            sleep=sleep,
        )
        monitor = PendingDeliveryMonitor(
            engine,
            local_queue,
            event_bus=event_bus,
            check_interval=settings.pending_check_interval_seconds,
        )
        cache = NotificationCache(freshness=settings.cache_freshness_seconds, storage=storage)
        feed = NotificationFeed(
            user_id_provider=identity.current_user_id,
            api=api,
            store=store,
            local_queue=local_queue,
            cache=cache,
            delivery=delivery,
            throttle=settings.fetch_throttle_seconds,
            list_limit=settings.list_limit,
        )
        subscriptions = RealtimeSubscriptionManager(
            feed=feed,
            change_feed=change_feed,
            event_bus=event_bus,
            debounce=settings.realtime_debounce_seconds,
            poll_interval=settings.poll_interval_seconds,
            messaging_poll_interval=settings.messaging_poll_interval_seconds,
        )
        return cls(
            settings=settings,
            storage=storage,
            event_bus=event_bus,
            local_queue=local_queue,
            identity=identity,
            api=api,
            store=store,
            change_feed=change_feed,
            delivery=delivery,
            engine=engine,
            monitor=monitor,
            cache=cache,
            feed=feed,
            subscriptions=subscriptions,
        )

    async def deliver(
        self,
        user_id: str,
        type: NotificationType | str,
        message: str,
        reference_id: str | None = None,
    ) -> Notification | None:
        return await self.delivery.deliver(user_id, type, message, reference_id)

    async def retry_deliver(
        self,
        user_id: str,
        type: NotificationType | str,
        message: str,
        reference_id: str | None = None,
        *,
        max_retries: int | None = None,
        initial_delay: float | None = None,
    ) -> bool:
        if not user_id:
            logger.error("Missing user id for notification")
            return False
        request = DeliveryRequest(
            user_id=user_id,
            type=validate_notification_type(type),
            message=message,
            reference_id=reference_id,
        )
        return await self.engine.retry_deliver(
            request, max_retries=max_retries, initial_delay=initial_delay
        )

    async def process_pending_notifications(self) -> PendingProcessResult:
        return await self.engine.process_pending_notifications()

    async def notify_connection_request(
        self, receiver_id: str, sender_name: str, connection_id: str
    ) -> bool:
        return await notify_connection_request(
            self.engine,
            receiver_id=receiver_id,
            sender_name=sender_name,
            connection_id=connection_id,
        )

    async def notify_connection_accepted(
        self, receiver_id: str, acceptor_name: str, connection_id: str
    ) -> bool:
        return await notify_connection_accepted(
            self.engine,
            receiver_id=receiver_id,
            acceptor_name=acceptor_name,
            connection_id=connection_id,
        )

    async def notify_new_message(
        self, recipient_id: str, sender_name: str, conversation_id: str
    ) -> bool:
        return await notify_new_message(
            self.engine,
            self.local_queue,
            self.event_bus,
            recipient_id=recipient_id,
            sender_name=sender_name,
            conversation_id=conversation_id,
        )

    async def start(self, user_id: str | None = None, *, in_messaging_view: bool = False) -> bool:
        """Start pending processing and, once a user is known, the live feed.

        Returns whether the subscription was started.
        """

        self.monitor.start()
        user_id = user_id or await self.identity.current_user_id()
        if not user_id:
            logger.info("No current user; notification subscription not started")
            return False
        await self.subscriptions.start(user_id, in_messaging_view=in_messaging_view)
        return True

    async def aclose(self) -> None:
        await self.subscriptions.stop()
        await self.monitor.stop()
        await self.api.aclose()


__all__ = ["NotificationClient"]
