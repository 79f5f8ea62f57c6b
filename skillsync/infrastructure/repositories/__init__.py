"""Repository implementations for infrastructure layer."""

from .direct_store import DirectNotificationStore
from .notification_repository import NOTIFICATIONS_TABLE, NotificationRepository

__all__ = [
    "DirectNotificationStore",
    "NOTIFICATIONS_TABLE",
    "NotificationRepository",
]
