"""Public helpers for delivering and presenting notifications."""

from .cache import NotificationCache
from .delivery import DeliveryClient, NotificationStore, RemoteNotificationApi
from .events import (
    notify_connection_accepted,
    notify_connection_request,
    notify_new_message,
    send_message_notification,
)
from .feed import NotificationFeed
from .merge import combine, normalize_remote
from .monitor import PendingDeliveryMonitor
from .retry import (
    PendingProcessResult,
    RetryEngine,
    RetryOutcome,
    RetryPolicy,
    exponential_backoff,
)
from .subscription import RealtimeSubscriptionManager, SubscriptionState

__all__ = [
    "DeliveryClient",
    "NotificationCache",
    "NotificationFeed",
    "NotificationStore",
    "PendingDeliveryMonitor",
    "PendingProcessResult",
    "RealtimeSubscriptionManager",
    "RemoteNotificationApi",
    "RetryEngine",
    "RetryOutcome",
    "RetryPolicy",
    "SubscriptionState",
    "combine",
    "exponential_backoff",
    "normalize_remote",
    "notify_connection_accepted",
    "notify_connection_request",
    "notify_new_message",
    "send_message_notification",
]
