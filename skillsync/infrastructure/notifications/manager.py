"""Websocket registry for the live notification stream."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Iterable, Set

from fastapi import WebSocket

from .change_feed import ChangeEvent

logger = logging.getLogger(__name__)

PONG_FRAME = {"type": "pong"}


def init_frame(rows: Iterable[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "init", "data": list(rows)}


def change_frame(change: ChangeEvent) -> dict[str, Any]:
    return {"type": "change", "event": change.event, "data": dict(change.record)}


def is_ping(message: Any) -> bool:
    return isinstance(message, dict) and message.get("type") == "ping"


class NotificationConnectionManager:
    """Track the open notification sockets of each user.

    A socket joins with the user's unread rows as its ``init`` frame and then
    receives a ``change`` frame for every write to a row the user owns.
    Sockets that fail a send are dropped.
    """

    def __init__(self) -> None:
        self._connections: DefaultDict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(
        self, user_id: str, websocket: WebSocket, unread: Iterable[dict[str, Any]] = ()
    ) -> None:
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.info(
            "Notification websocket connected for user %s (connections=%s)",
            user_id,
            len(self._connections[user_id]),
        )
        await websocket.send_json(init_frame(unread))

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(user_id)
        if connections is None or websocket not in connections:
            return
        connections.discard(websocket)
        if not connections:
            del self._connections[user_id]
        logger.info("Notification websocket disconnected for user %s", user_id)

    def connection_count(self, user_id: str | None = None) -> int:
        if user_id is None:
            return sum(len(sockets) for sockets in self._connections.values())
        return len(self._connections.get(user_id, ()))

    async def reply(self, websocket: WebSocket, message: Any) -> None:
        """Answer a client frame; only ``ping`` expects a reply."""

        if is_ping(message):
            await websocket.send_json(PONG_FRAME)

    async def push_change(self, change: ChangeEvent) -> int:
        """Send ``change`` to the sockets of the row owner; return how many got it."""

        user_id = change.record.get("user_id")
        if not user_id:
            return 0
        user_id = str(user_id)
        frame = change_frame(change)
        delivered = 0
        for connection in list(self._connections.get(user_id, ())):
            try:
                await connection.send_json(frame)
            except Exception as exc:
                logger.warning("Dropping notification websocket for user %s: %s", user_id, exc)
                self.disconnect(user_id, connection)
            else:
                delivered += 1
        return delivered


notification_manager = NotificationConnectionManager()


__all__ = [
    "PONG_FRAME",
    "NotificationConnectionManager",
    "change_frame",
    "init_frame",
    "is_ping",
    "notification_manager",
]
