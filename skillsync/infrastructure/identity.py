"""Current-user lookup with a durable cache."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUserId"

IdentityResolver = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class CachedIdentityProvider:
    """Return the current user id, remembering it under ``currentUserId``."""

    def __init__(
        self, resolver: IdentityResolver, storage: Optional[KeyValueStorage] = None
    ) -> None:
        self._resolver = resolver
        self._storage = storage

    async def current_user_id(self) -> str | None:
        cached = self._read_cached()
        if cached:
            return cached

        try:
            result = self._resolver()
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception("Error resolving the current user")
            return None

        if not result:
            return None
        user_id = str(result)
        self._write_cached(user_id)
        return user_id

    def forget(self) -> None:
        """Drop the cached id, e.g. when the session ends."""

        if self._storage is None:
            return
        try:
            self._storage.remove(CURRENT_USER_KEY)
        except Exception:
            logger.exception("Failed to clear the cached user id")

    def _read_cached(self) -> str | None:
        if self._storage is None:
            return None
        try:
            value = self._storage.get(CURRENT_USER_KEY)
        except Exception:
            logger.exception("Failed to read the cached user id")
            return None
        return str(value) if value else None

    def _write_cached(self, user_id: str) -> None:
        if self._storage is None:
            return
        try:
            self._storage.set(CURRENT_USER_KEY, user_id)
        except Exception:
            logger.exception("Failed to cache the current user id")


__all__ = ["CURRENT_USER_KEY", "CachedIdentityProvider", "IdentityResolver"]
