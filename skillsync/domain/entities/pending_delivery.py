"""Domain entity describing a notification send awaiting confirmation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .notification import DeliveryRequest, validate_notification_type

PENDING_EXPIRY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class PendingDelivery:
    """Durable marker for an in-flight or failed notification send.

    ``timestamp`` is the creation time of the attempt in epoch milliseconds.
    """

    user_id: str
    type: str
    message: str
    reference_id: str | None
    timestamp: int
    retries: int = 0

    @classmethod
    def for_request(cls, request: DeliveryRequest, *, timestamp: int) -> "PendingDelivery":
        return cls(
            user_id=request.user_id,
            type=request.type.value,
            message=request.message,
            reference_id=request.reference_id,
            timestamp=timestamp,
            retries=0,
        )

    def matches(self, request: DeliveryRequest) -> bool:
        """Return whether this record describes the same send as ``request``."""

        return (
            self.user_id == request.user_id
            and self.type == request.type.value
            and self.message == request.message
            and self.reference_id == request.reference_id
        )

    def is_expired(self, now_ms: int, max_age_ms: int = PENDING_EXPIRY_MS) -> bool:
        return now_ms - self.timestamp > max_age_ms

    def with_retries(self, retries: int) -> "PendingDelivery":
        return replace(self, retries=retries)

    def to_request(self) -> DeliveryRequest:
        return DeliveryRequest(
            user_id=self.user_id,
            type=validate_notification_type(self.type),
            message=self.message,
            reference_id=self.reference_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "type": self.type,
            "message": self.message,
            "referenceId": self.reference_id,
            "timestamp": self.timestamp,
            "retries": self.retries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingDelivery":
        return cls(
            user_id=str(data["userId"]),
            type=str(data["type"]),
            message=str(data["message"]),
            reference_id=data.get("referenceId"),
            timestamp=int(data.get("timestamp") or 0),
            retries=int(data.get("retries") or 0),
        )


__all__ = ["PENDING_EXPIRY_MS", "PendingDelivery"]
