"""Pydantic models describing notification payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from skillsync.domain.entities import DeliveryRequest, validate_notification_type


class NotificationCreate(BaseModel):
    """Body accepted by ``POST /api/notifications``.

    Every field is optional at the schema level so that the route can answer
    incomplete bodies with its own error payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    type: str | None = None
    message: str | None = None
    reference_id: str | None = Field(default=None, alias="referenceId")
    is_read: bool = Field(default=False, alias="isRead")

    def is_complete(self) -> bool:
        return bool(self.user_id and self.type and self.message)

    def to_request(self) -> DeliveryRequest:
        return DeliveryRequest(
            user_id=self.user_id or "",
            type=validate_notification_type(self.type),
            message=self.message or "",
            reference_id=self.reference_id or None,
            is_read=self.is_read,
        )


class NotificationRead(BaseModel):
    """Row representation returned to clients."""

    id: str
    user_id: str
    type: str
    message: str
    reference_id: str | None = None
    is_read: bool = False
    created_at: str


__all__ = ["NotificationCreate", "NotificationRead"]
