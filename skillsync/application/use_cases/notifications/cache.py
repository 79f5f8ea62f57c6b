"""Time-bounded cache of a user's merged notification list."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from cachetools import TLRUCache

from skillsync.domain.entities import Notification, NotificationOrigin
from skillsync.infrastructure.storage import KeyValueStorage

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = "notification_cache"
DEFAULT_FRESHNESS = 300.0


@dataclass
class CacheEntry:
    user_id: str
    timestamp: float
    data: list[Notification] = field(default_factory=list)


class NotificationCache:
    """Hold the last merged list for one user.

    Entries live in a single-slot ``TLRUCache`` keyed by user id whose expiry
    is ``timestamp + freshness``, so a list restored from ``storage`` keeps the
    age it had when it was written. Setting an entry replaces any previous one.
    """

    def __init__(
        self,
        *,
        freshness: float = DEFAULT_FRESHNESS,
        clock: Callable[[], float] = time.time,
        storage: Optional[KeyValueStorage] = None,
    ) -> None:
        self._freshness = freshness
        self._clock = clock
        self._storage = storage
        self._entries: TLRUCache = TLRUCache(maxsize=1, ttu=self._expires_at, timer=clock)
        restored = self._restore()
        if restored is not None:
            self._entries[restored.user_id] = restored

    def is_valid(self, user_id: str | None = None) -> bool:
        if user_id is None:
            return self._current() is not None
        return user_id in self._entries

    def get_cached_notifications(self) -> list[Notification]:
        entry = self._current()
        return list(entry.data) if entry else []

    def get_cached_user_id(self) -> str | None:
        entry = self._current()
        return entry.user_id if entry else None

    def set(self, notifications: list[Notification], user_id: str) -> None:
        entry = CacheEntry(user_id=user_id, timestamp=self._clock(), data=list(notifications))
        self._entries.clear()
        self._entries[user_id] = entry
        self._persist(entry)

    def invalidate(self) -> None:
        self._entries.clear()
        if self._storage is None:
            return
        try:
            self._storage.remove(CACHE_STORAGE_KEY)
        except Exception:
            logger.exception("Failed to clear the persisted notification cache")

    def _expires_at(self, _user_id: str, entry: CacheEntry, _now: float) -> float:
        return entry.timestamp + self._freshness

    def _current(self) -> Optional[CacheEntry]:
        self._entries.expire()
        for entry in self._entries.values():
            return entry
        return None

    def _persist(self, entry: CacheEntry) -> None:
        if self._storage is None:
            return
        try:
            self._storage.set(
                CACHE_STORAGE_KEY,
                {
                    "userId": entry.user_id,
                    "timestamp": entry.timestamp,
                    "data": [
                        {**notification.to_dict(), "origin": notification.origin.value}
                        for notification in entry.data
                    ],
                },
            )
        except Exception:
            logger.exception("Failed to persist the notification cache")

    def _restore(self) -> Optional[CacheEntry]:
        if self._storage is None:
            return None
        try:
            stored = self._storage.get(CACHE_STORAGE_KEY)
            if not isinstance(stored, dict):
                return None
            return CacheEntry(
                user_id=str(stored["userId"]),
                timestamp=float(stored["timestamp"]),
                data=[
                    Notification.from_dict(
                        row, origin=NotificationOrigin(row.get("origin", "remote"))
                    )
                    for row in stored.get("data", [])
                ],
            )
        except Exception:
            logger.exception("Failed to load the notification cache from storage")
            return None


__all__ = ["CACHE_STORAGE_KEY", "CacheEntry", "NotificationCache"]
