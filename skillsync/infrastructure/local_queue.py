"""Client-side durable log of pending sends and locally synthesized notifications."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, Optional

from skillsync.domain.entities import (
    LOCAL_ID_PREFIX,
    DeliveryRequest,
    Notification,
    NotificationOrigin,
    PendingDelivery,
)
from skillsync.infrastructure.notifications.event_bus import LOCAL_NOTIFICATION, EventBus
from skillsync.utils import from_epoch_millis

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_notifications"
LOCAL_NOTIFICATIONS_KEY = "local_notifications"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class LocalDurableQueue:
    """Persist pending delivery records and local notifications.

    Every operation reads the whole collection, changes it, and writes it back.
    Failures of the storage layer are logged and turned into neutral return
    values, so callers never have to guard these calls. ``storage`` may be
    ``None`` when no durable medium exists; all operations are then no-ops.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage],
        *,
        event_bus: Optional[EventBus] = None,
        id_prefix: str = LOCAL_ID_PREFIX,
        clock_ms: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._storage = storage
        self._event_bus = event_bus
        self._id_prefix = id_prefix
        self._clock_ms = clock_ms
        self._sequence = itertools.count()

    @property
    def available(self) -> bool:
        return self._storage is not None

    @property
    def id_prefix(self) -> str:
        return self._id_prefix

    # Pending delivery records

    def enqueue_pending(self, record: PendingDelivery) -> bool:
        """Append ``record``; existing entries are never overwritten."""

        try:
            entries = self._read_list(PENDING_KEY)
            entries.append(record.to_dict())
            self._write_list(PENDING_KEY, entries)
            return True
        except Exception:
            logger.exception("Failed to store pending notification for user %s", record.user_id)
            return False

    def remove_pending(self, request: DeliveryRequest) -> int:
        """Remove every pending record describing ``request``; return how many."""

        try:
            entries = self._read_list(PENDING_KEY)
            kept = [entry for entry in entries if not self._entry_matches(entry, request)]
            removed = len(entries) - len(kept)
            if removed:
                self._write_list(PENDING_KEY, kept)
            return removed
        except Exception:
            logger.exception("Failed to remove pending notification for user %s", request.user_id)
            return 0

    def increment_retries(self, request: DeliveryRequest) -> int:
        """Add one to ``retries`` on every record describing ``request``."""

        try:
            entries = self._read_list(PENDING_KEY)
            updated = 0
            for entry in entries:
                if self._entry_matches(entry, request):
                    entry["retries"] = int(entry.get("retries") or 0) + 1
                    updated += 1
            if updated:
                self._write_list(PENDING_KEY, entries)
            return updated
        except Exception:
            logger.exception(
                "Failed to update pending notification retries for user %s", request.user_id
            )
            return 0

    def list_pending(self) -> list[PendingDelivery]:
        """Return every pending record, expired ones included."""

        try:
            entries = self._read_list(PENDING_KEY)
        except Exception:
            logger.exception("Failed to read pending notifications")
            return []
        records: list[PendingDelivery] = []
        for entry in entries:
            try:
                records.append(PendingDelivery.from_dict(entry))
            except (KeyError, TypeError, ValueError):
                logger.warning("Ignoring malformed pending notification entry: %s", entry)
        return records

    def has_pending(self) -> bool:
        return bool(self.list_pending())

    # Local notifications

    def store_local_notification(
        self,
        *,
        user_id: str | None,
        type: str,
        message: str,
        reference_id: str | None = None,
        is_read: bool = False,
        recipient_id: str | None = None,
        sender_name: str | None = None,
    ) -> Notification | None:
        """Append a local notification with a fresh local id and creation time."""

        if self._storage is None:
            logger.warning("Durable storage unavailable; local notification dropped")
            return None
        try:
            now_ms = self._clock_ms()
            notification = Notification.from_dict(
                {
                    "id": self._next_local_id(now_ms),
                    "user_id": user_id,
                    "type": type,
                    "message": message,
                    "reference_id": reference_id,
                    "is_read": is_read,
                    "created_at": from_epoch_millis(now_ms),
                    "recipient_id": recipient_id,
                    "sender_name": sender_name,
                },
                origin=NotificationOrigin.LOCAL,
            )
            entries = self._read_list(LOCAL_NOTIFICATIONS_KEY)
            entries.append(notification.to_dict())
            self._write_list(LOCAL_NOTIFICATIONS_KEY, entries)
        except Exception:
            logger.exception("Failed to store notification locally")
            return None

        logger.info("Notification %s stored locally for user %s", notification.id, user_id)
        if self._event_bus is not None:
            self._event_bus.publish(LOCAL_NOTIFICATION, notification)
        return notification

    def list_local_notifications(self, user_id: str) -> list[Notification]:
        """Return the local notifications addressed to ``user_id``, newest first."""

        try:
            entries = self._read_list(LOCAL_NOTIFICATIONS_KEY)
        except Exception:
            logger.exception("Failed to read local notifications")
            return []
        notifications = [
            Notification.from_dict(entry, origin=NotificationOrigin.LOCAL)
            for entry in entries
            if isinstance(entry, dict)
            and (entry.get("user_id") == user_id or entry.get("recipient_id") == user_id)
        ]
        notifications.sort(key=lambda notification: notification.created_at, reverse=True)
        return notifications

    def has_local_notification(self, request: DeliveryRequest) -> bool:
        """Return whether a local notification already carries ``request``'s content."""

        try:
            entries = self._read_list(LOCAL_NOTIFICATIONS_KEY)
        except Exception:
            logger.exception("Failed to read local notifications")
            return False
        return any(
            request.user_id in (entry.get("user_id"), entry.get("recipient_id"))
            and entry.get("type") == request.type.value
            and entry.get("message") == request.message
            and entry.get("reference_id") == request.reference_id
            for entry in entries
        )

    def mark_local_read(self, notification_id: str) -> bool:
        try:
            entries = self._read_list(LOCAL_NOTIFICATIONS_KEY)
            for entry in entries:
                if entry.get("id") == notification_id:
                    entry["is_read"] = True
            self._write_list(LOCAL_NOTIFICATIONS_KEY, entries)
            return True
        except Exception:
            logger.exception("Failed to mark local notification %s as read", notification_id)
            return False

    def mark_all_local_read(self, user_id: str) -> bool:
        try:
            entries = self._read_list(LOCAL_NOTIFICATIONS_KEY)
            for entry in entries:
                if entry.get("user_id") == user_id or entry.get("recipient_id") == user_id:
                    entry["is_read"] = True
            self._write_list(LOCAL_NOTIFICATIONS_KEY, entries)
            return True
        except Exception:
            logger.exception("Failed to mark local notifications of user %s as read", user_id)
            return False

    def _next_local_id(self, now_ms: int) -> str:
        # The counter keeps ids distinct within one millisecond.
        return f"{self._id_prefix}{now_ms}-{next(self._sequence)}"

    def _read_list(self, key: str) -> list[dict[str, Any]]:
        if self._storage is None:
            return []
        value = self._storage.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.error("Storage key %s does not hold a list; resetting it", key)
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    def _write_list(self, key: str, entries: list[dict[str, Any]]) -> None:
        if self._storage is None:
            return
        self._storage.set(key, entries)

    @staticmethod
    def _entry_matches(entry: dict[str, Any], request: DeliveryRequest) -> bool:
        return (
            entry.get("userId") == request.user_id
            and entry.get("type") == request.type.value
            and entry.get("message") == request.message
            and entry.get("referenceId") == request.reference_id
        )


__all__ = ["LOCAL_NOTIFICATIONS_KEY", "PENDING_KEY", "LocalDurableQueue"]
