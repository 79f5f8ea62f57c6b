"""Persist a notification through the first channel that accepts it."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from skillsync.domain.entities import (
    DeliveryRequest,
    Notification,
    NotificationType,
    is_local_id,
    validate_notification_type,
)
from skillsync.infrastructure.local_queue import LocalDurableQueue
from skillsync.infrastructure.notifications import NotificationApiError

logger = logging.getLogger(__name__)


class RemoteNotificationApi(Protocol):
    async def create(self, request: DeliveryRequest) -> Notification: ...

    async def list_for_user(self, user_id: str) -> list[dict]: ...


class NotificationStore(Protocol):
    async def insert(self, request: DeliveryRequest) -> Notification: ...

    async def select_for_user(
        self, user_id: str, *, limit: int | None = 50
    ) -> list[Notification]: ...

    async def mark_as_read(self, notification_id: str) -> bool: ...

    async def mark_all_as_read(self, user_id: str) -> int: ...


class DeliveryClient:
    """Create notifications via the API, the store, or local storage, in that order.

    None of the public methods raise; failures are logged and reported through
    the return value.
    """

    def __init__(
        self,
        *,
        api: Optional[RemoteNotificationApi],
        store: Optional[NotificationStore],
        local_queue: LocalDurableQueue,
    ) -> None:
        self._api = api
        self._store = store
        self._local_queue = local_queue

    async def deliver(
        self,
        user_id: str,
        type: NotificationType | str,
        message: str,
        reference_id: str | None = None,
        *,
        is_read: bool = False,
    ) -> Notification | None:
        if not user_id:
            logger.error("Missing user id for notification")
            return None

        request = DeliveryRequest(
            user_id=user_id,
            type=validate_notification_type(type),
            message=message,
            reference_id=reference_id,
            is_read=is_read,
        )
        return await self.deliver_request(request)

    async def deliver_request(self, request: DeliveryRequest) -> Notification | None:
        notification = await self._create_via_api(request)
        if notification is not None:
            return notification

        notification = await self._create_via_store(request)
        if notification is not None:
            return notification

        logger.warning(
            "All remote notification channels failed for user %s; storing locally",
            request.user_id,
        )
        return self._local_queue.store_local_notification(
            user_id=request.user_id,
            type=request.type.value,
            message=request.message,
            reference_id=request.reference_id,
            is_read=request.is_read,
        )

    async def mark_as_read(self, notification_id: str) -> bool:
        if is_local_id(notification_id, self._local_queue.id_prefix):
            return self._local_queue.mark_local_read(notification_id)
        if self._store is None:
            logger.error("No notification store configured to mark %s as read", notification_id)
            return False
        try:
            return await self._store.mark_as_read(notification_id)
        except Exception:
            logger.exception("Error marking notification %s as read", notification_id)
            return False

    async def mark_all_as_read(self, user_id: str) -> bool:
        if not user_id:
            logger.error("Missing user id for marking all notifications as read")
            return False
        if self._store is not None:
            try:
                updated = await self._store.mark_all_as_read(user_id)
                logger.info("Marked %s stored notifications of user %s as read", updated, user_id)
            except Exception:
                logger.exception(
                    "Error marking all stored notifications of user %s as read", user_id
                )
        self._local_queue.mark_all_local_read(user_id)
        return True

    async def _create_via_api(self, request: DeliveryRequest) -> Notification | None:
        if self._api is None:
            return None
        try:
            notification = await self._api.create(request)
        except NotificationApiError as exc:
            logger.error(
                "API error creating notification for user %s: %s (status=%s, body=%s)",
                request.user_id,
                exc,
                exc.status_code,
                exc.body,
            )
            return None
        except Exception:
            logger.exception("API call failed for notification to user %s", request.user_id)
            return None
        logger.info("Notification %s created via API", notification.id)
        return notification

    async def _create_via_store(self, request: DeliveryRequest) -> Notification | None:
        if self._store is None:
            return None
        try:
            notification = await self._store.insert(request)
        except Exception:
            logger.exception("Direct store insert failed for user %s", request.user_id)
            return None
        logger.info("Notification %s created via direct insert", notification.id)
        return notification


__all__ = ["DeliveryClient", "NotificationStore", "RemoteNotificationApi"]
