"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from sqlalchemy.orm import Session

from skillsync.domain.entities import (
    DeliveryRequest,
    Notification,
    validate_notification_type,
)
from skillsync.infrastructure.models import NotificationModel
from skillsync.infrastructure.notifications.change_feed import (
    INSERT,
    NOTIFICATIONS_TABLE,
    UPDATE,
    ChangeEvent,
    InProcessChangeFeed,
)
from skillsync.utils import ensure_naive_utc, ensure_utc, now_utc


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects.

    Committed writes are published on ``change_feed`` when one is given.
    """

    def __init__(
        self, session: Session, *, change_feed: Optional[InProcessChangeFeed] = None
    ) -> None:
        self.session = session
        self.change_feed = change_feed

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel)
        query = query.filter(NotificationModel.user_id == user_id)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_unread_for_user(
        self, user_id: str, *, limit: int | None = 50
    ) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def get(self, notification_id: str) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        return self._to_entity(model)

    def create(self, request: DeliveryRequest) -> Notification:
        model = NotificationModel(
            user_id=request.user_id,
            type=request.type.value,
            message=request.message,
            reference_id=request.reference_id or None,
            is_read=request.is_read,
            created_at=ensure_naive_utc(now_utc()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        notification = self._to_entity(model)
        self._publish(INSERT, notification)
        return notification

    def mark_as_read(self, notification_id: str) -> bool:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return False
        model.is_read = True
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        self._publish(UPDATE, self._to_entity(model))
        return True

    def mark_all_as_read(self, user_id: str) -> int:
        models = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .all()
        )
        for model in models:
            model.is_read = True
        self.session.commit()
        for model in models:
            self._publish(UPDATE, self._to_entity(model))
        return len(models)

    def _publish(self, event: str, notification: Notification) -> None:
        if self.change_feed is None:
            return
        self.change_feed.publish(
            ChangeEvent(table=NOTIFICATIONS_TABLE, event=event, record=notification.to_dict())
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=validate_notification_type(model.type),
            message=model.message,
            reference_id=model.reference_id,
            is_read=bool(model.is_read),
            created_at=ensure_utc(model.created_at),
        )


__all__ = ["NOTIFICATIONS_TABLE", "NotificationRepository"]
