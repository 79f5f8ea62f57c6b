"""Utility helpers to generate and dispatch domain notifications."""

from __future__ import annotations

import logging

from skillsync.domain.entities import DeliveryRequest, NotificationType
from skillsync.infrastructure.local_queue import LocalDurableQueue
from skillsync.infrastructure.notifications import NEW_NOTIFICATION, EventBus

from .retry import RetryEngine

logger = logging.getLogger(__name__)


async def notify_connection_request(
    engine: RetryEngine, *, receiver_id: str, sender_name: str, connection_id: str
) -> bool:
    """Tell ``receiver_id`` that ``sender_name`` wants to connect."""

    return await engine.retry_deliver(
        DeliveryRequest(
            user_id=receiver_id,
            type=NotificationType.CONNECTION_REQUEST,
            message=f"{sender_name} sent you a connection request",
            reference_id=connection_id,
        )
    )


async def notify_connection_accepted(
    engine: RetryEngine, *, receiver_id: str, acceptor_name: str, connection_id: str
) -> bool:
    """Tell ``receiver_id`` that ``acceptor_name`` accepted their request."""

    return await engine.retry_deliver(
        DeliveryRequest(
            user_id=receiver_id,
            type=NotificationType.CONNECTION_ACCEPTED,
            message=f"{acceptor_name} accepted your connection request",
            reference_id=connection_id,
        )
    )


async def send_message_notification(
    engine: RetryEngine, *, recipient_id: str, sender_name: str, conversation_id: str
) -> bool:
    """Send a new-message notification through the retry engine."""

    return await engine.retry_deliver(
        DeliveryRequest(
            user_id=recipient_id,
            type=NotificationType.MESSAGE,
            message=f"{sender_name} sent you a message",
            reference_id=conversation_id,
        )
    )


async def notify_new_message(
    engine: RetryEngine,
    local_queue: LocalDurableQueue,
    event_bus: EventBus,
    *,
    recipient_id: str,
    sender_name: str,
    conversation_id: str,
) -> bool:
    """Send a new-message notification and show an optimistic local echo.

    The echo keeps the legacy ``recipient_id`` and ``sender_name`` fields and
    is announced on the bus right away, before the remote send completes.
    """

    echo = local_queue.store_local_notification(
        user_id=recipient_id,
        recipient_id=recipient_id,
        sender_name=sender_name,
        type=NotificationType.MESSAGE.value,
        message=f"{sender_name} sent you a message",
        reference_id=conversation_id,
    )
    if echo is not None:
        event_bus.publish(NEW_NOTIFICATION, echo)
    else:
        logger.warning("Local echo for message notification to %s was not stored", recipient_id)

    return await send_message_notification(
        engine,
        recipient_id=recipient_id,
        sender_name=sender_name,
        conversation_id=conversation_id,
    )


__all__ = [
    "notify_connection_accepted",
    "notify_connection_request",
    "notify_new_message",
    "send_message_notification",
]
