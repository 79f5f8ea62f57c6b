"""Notification transport helpers for the infrastructure layer."""

from .api_client import NOTIFICATIONS_PATH, NotificationApiClient, NotificationApiError
from .change_feed import (
    DELETE,
    INSERT,
    NOTIFICATIONS_TABLE,
    UPDATE,
    ChangeEvent,
    ChangeFeed,
    InProcessChangeFeed,
    SubscriptionHandle,
)
from .event_bus import (
    LOCAL_NOTIFICATION,
    NETWORK_ONLINE,
    NEW_MESSAGE,
    NEW_NOTIFICATION,
    STORAGE_CHANGED,
    EventBus,
)

__all__ = [
    "DELETE",
    "INSERT",
    "NOTIFICATIONS_TABLE",
    "UPDATE",
    "LOCAL_NOTIFICATION",
    "NETWORK_ONLINE",
    "NEW_MESSAGE",
    "NEW_NOTIFICATION",
    "NOTIFICATIONS_PATH",
    "STORAGE_CHANGED",
    "ChangeEvent",
    "ChangeFeed",
    "EventBus",
    "InProcessChangeFeed",
    "NotificationApiClient",
    "NotificationApiError",
    "SubscriptionHandle",
]
