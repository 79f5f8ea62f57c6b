"""Async access to the notification table that bypasses the remote API."""

from __future__ import annotations

from functools import partial
from typing import Callable, Optional, TypeVar

import anyio
from sqlalchemy.orm import Session

from skillsync.domain.entities import DeliveryRequest, Notification
from skillsync.infrastructure.notifications.change_feed import InProcessChangeFeed

from .notification_repository import NotificationRepository

T = TypeVar("T")


class DirectNotificationStore:
    """Run repository operations on a worker thread with a short-lived session."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        change_feed: Optional[InProcessChangeFeed] = None,
    ) -> None:
        self._session_factory = session_factory
        self._change_feed = change_feed

    async def insert(self, request: DeliveryRequest) -> Notification:
        return await self._run(lambda repository: repository.create(request))

    async def select_for_user(self, user_id: str, *, limit: int | None = 50) -> list[Notification]:
        return await self._run(
            lambda repository: list(repository.list_for_user(user_id, limit=limit))
        )

    async def mark_as_read(self, notification_id: str) -> bool:
        return await self._run(lambda repository: repository.mark_as_read(notification_id))

    async def mark_all_as_read(self, user_id: str) -> int:
        return await self._run(lambda repository: repository.mark_all_as_read(user_id))

    async def _run(self, operation: Callable[[NotificationRepository], T]) -> T:
        return await anyio.to_thread.run_sync(partial(self._execute, operation))

    def _execute(self, operation: Callable[[NotificationRepository], T]) -> T:
        session = self._session_factory()
        try:
            return operation(NotificationRepository(session, change_feed=self._change_feed))
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


__all__ = ["DirectNotificationStore"]
