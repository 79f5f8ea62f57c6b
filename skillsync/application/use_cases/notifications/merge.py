"""Combine remote notifications with local fallback records."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from skillsync.domain.entities import Notification, NotificationOrigin
from skillsync.infrastructure.local_queue import LocalDurableQueue

logger = logging.getLogger(__name__)


def normalize_remote(rows: Iterable[dict[str, Any]]) -> list[Notification]:
    """Map raw remote rows onto :class:`Notification` with consistent fields."""

    return [Notification.from_dict(row, origin=NotificationOrigin.REMOTE) for row in rows]


def combine(
    remote: list[Notification], user_id: str, local_queue: LocalDurableQueue
) -> list[Notification]:
    """Return remote and local notifications of ``user_id`` as one list, newest first.

    Local records are dropped only when their id equals a remote id, in which
    case the remote copy wins. A local echo of an event that later succeeded
    remotely under a server-assigned id is therefore kept next to it.
    """

    try:
        local = local_queue.list_local_notifications(user_id)
        remote_ids = {notification.id for notification in remote}
        local_only = [notification for notification in local if notification.id not in remote_ids]
        merged = [*remote, *local_only]
        merged.sort(key=lambda notification: notification.created_at, reverse=True)
        return merged
    except Exception:
        logger.exception("Error combining notifications for user %s", user_id)
        return list(remote)


__all__ = ["combine", "normalize_remote"]
