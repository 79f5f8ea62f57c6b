"""SQLAlchemy model for persisted notifications."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Text

from skillsync.infrastructure.database import Base
from skillsync.infrastructure.notifications.change_feed import NOTIFICATIONS_TABLE
from skillsync.utils import now_naive_utc


def _new_notification_id() -> str:
    return str(uuid4())


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = NOTIFICATIONS_TABLE

    id = Column(String(36), primary_key=True, default=_new_notification_id)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    message = Column(Text, nullable=False)
    reference_id = Column(String(128), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc, index=True)


__all__ = ["NotificationModel"]
