"""Domain entities representing user notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from skillsync.utils import now_utc, parse_timestamp

LOCAL_ID_PREFIX = "local-"


class NotificationType(str, Enum):
    """Kinds of events a user can be notified about."""

    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPTED = "connection_accepted"
    MESSAGE = "message"
    SKILL_MATCH = "skill_match"
    SYSTEM = "system"


class NotificationOrigin(str, Enum):
    """Where a notification record comes from."""

    REMOTE = "remote"
    LOCAL = "local"


def validate_notification_type(value: object) -> NotificationType:
    """Coerce ``value`` into a :class:`NotificationType`, defaulting to ``system``."""

    if isinstance(value, NotificationType):
        return value
    try:
        return NotificationType(str(value))
    except ValueError:
        return NotificationType.SYSTEM


def is_local_id(notification_id: str | None, prefix: str = LOCAL_ID_PREFIX) -> bool:
    """Return whether ``notification_id`` belongs to the client-side namespace."""

    return bool(notification_id) and str(notification_id).startswith(prefix)


@dataclass
class Notification:
    """Information message delivered to a specific user.

    Remote and local records share this shape; ``origin`` tells them apart.
    ``recipient_id`` is a legacy alias of ``user_id`` only found on local
    records.
    """

    id: str
    user_id: str | None
    type: NotificationType
    message: str
    reference_id: str | None = None
    is_read: bool = False
    created_at: datetime = field(default_factory=now_utc)
    origin: NotificationOrigin = NotificationOrigin.REMOTE
    recipient_id: str | None = None
    sender_name: str | None = None

    @property
    def is_local(self) -> bool:
        return self.origin is NotificationOrigin.LOCAL

    def addressed_to(self, user_id: str) -> bool:
        """Return whether this notification targets ``user_id``."""

        return self.user_id == user_id or self.recipient_id == user_id

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation of this notification."""

        data: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "message": self.message,
            "reference_id": self.reference_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }
        if self.origin is NotificationOrigin.LOCAL:
            data["origin"] = self.origin.value
            if self.recipient_id is not None:
                data["recipient_id"] = self.recipient_id
            if self.sender_name is not None:
                data["sender_name"] = self.sender_name
        return data

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        origin: NotificationOrigin = NotificationOrigin.REMOTE,
    ) -> "Notification":
        """Build a notification from a JSON row.

        Remote rows may carry their identifier as ``notification_id``.
        """

        identifier = data.get("id") or data.get("notification_id") or ""
        reference_id = data.get("reference_id")
        user_id = data.get("user_id")
        return cls(
            id=str(identifier),
            user_id=str(user_id) if user_id is not None else None,
            type=validate_notification_type(data.get("type")),
            message=str(data.get("message") or ""),
            reference_id=str(reference_id) if reference_id is not None else None,
            is_read=bool(data.get("is_read", False)),
            created_at=parse_timestamp(data.get("created_at")) or now_utc(),
            origin=origin,
            recipient_id=data.get("recipient_id"),
            sender_name=data.get("sender_name"),
        )


@dataclass(frozen=True)
class DeliveryRequest:
    """The logical content of one notification send."""

    user_id: str
    type: NotificationType
    message: str
    reference_id: str | None = None
    is_read: bool = False

    def to_api_payload(self) -> dict[str, Any]:
        """Return the body accepted by the remote create endpoint."""

        payload: dict[str, Any] = {
            "userId": self.user_id,
            "type": self.type.value,
            "message": self.message,
            "isRead": self.is_read,
        }
        if self.reference_id:
            payload["referenceId"] = self.reference_id
        return payload

    def to_row(self) -> dict[str, Any]:
        """Return the column values used for a direct store insert."""

        row: dict[str, Any] = {
            "user_id": self.user_id,
            "type": self.type.value,
            "message": self.message,
            "is_read": self.is_read,
        }
        if self.reference_id:
            row["reference_id"] = self.reference_id
        return row


__all__ = [
    "LOCAL_ID_PREFIX",
    "DeliveryRequest",
    "Notification",
    "NotificationOrigin",
    "NotificationType",
    "is_local_id",
    "validate_notification_type",
]
