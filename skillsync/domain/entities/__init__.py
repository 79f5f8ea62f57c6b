"""Domain entities exposed by the application."""

from .notification import (
    LOCAL_ID_PREFIX,
    DeliveryRequest,
    Notification,
    NotificationOrigin,
    NotificationType,
    is_local_id,
    validate_notification_type,
)
from .pending_delivery import PENDING_EXPIRY_MS, PendingDelivery

__all__ = [
    "LOCAL_ID_PREFIX",
    "PENDING_EXPIRY_MS",
    "DeliveryRequest",
    "Notification",
    "NotificationOrigin",
    "NotificationType",
    "PendingDelivery",
    "is_local_id",
    "validate_notification_type",
]
