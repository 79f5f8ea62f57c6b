"""Tests for the notification domain entities."""

from __future__ import annotations

from skillsync.domain.entities import (
    PENDING_EXPIRY_MS,
    DeliveryRequest,
    Notification,
    NotificationOrigin,
    NotificationType,
    PendingDelivery,
    is_local_id,
    validate_notification_type,
)


def test_validate_notification_type() -> None:
    assert validate_notification_type("message") is NotificationType.MESSAGE
    assert validate_notification_type(NotificationType.SKILL_MATCH) is NotificationType.SKILL_MATCH
    assert validate_notification_type("unknown") is NotificationType.SYSTEM
    assert validate_notification_type(None) is NotificationType.SYSTEM


def test_local_ids_are_recognised_by_prefix() -> None:
    assert is_local_id("local-1700000000000-0")
    assert not is_local_id("0f8e9d2c-remote")
    assert not is_local_id(None)
    assert is_local_id("tmp-1", prefix="tmp-")


def test_local_notifications_serialise_legacy_fields() -> None:
    local = Notification.from_dict(
        {
            "id": "local-1",
            "user_id": None,
            "recipient_id": "user-1",
            "sender_name": "Ada",
            "type": "message",
            "message": "Ada sent you a message",
            "created_at": "2024-01-01T00:00:00+00:00",
        },
        origin=NotificationOrigin.LOCAL,
    )

    data = local.to_dict()

    assert local.addressed_to("user-1")
    assert data["origin"] == "local"
    assert data["recipient_id"] == "user-1"
    assert data["sender_name"] == "Ada"
    assert "origin" not in Notification.from_dict(data).to_dict()


def test_pending_delivery_matches_content_and_expires() -> None:
    request = DeliveryRequest(
        user_id="user-1", type=NotificationType.SYSTEM, message="hi", reference_id=None
    )
    record = PendingDelivery.for_request(request, timestamp=1_000)

    assert record.matches(request)
    assert not record.matches(
        DeliveryRequest(user_id="user-1", type=NotificationType.SYSTEM, message="bye")
    )
    assert not record.is_expired(1_000 + PENDING_EXPIRY_MS)
    assert record.is_expired(1_000 + PENDING_EXPIRY_MS + 1)
    assert PendingDelivery.from_dict(record.to_dict()) == record
    assert record.with_retries(2).retries == 2
    assert record.to_request() == request
