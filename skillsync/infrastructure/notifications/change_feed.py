"""Row change subscriptions for the notification store."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "notifications"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change published by the store."""

    table: str
    event: str
    record: dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned by :meth:`ChangeFeed.subscribe`."""

    id: int
    table: str


class ChangeFeed(Protocol):
    def subscribe(
        self, table: str, filters: Mapping[str, Any], callback: ChangeCallback
    ) -> SubscriptionHandle: ...

    def unsubscribe(self, handle: SubscriptionHandle) -> None: ...


@dataclass
class _Subscription:
    table: str
    filters: dict[str, Any]
    callback: ChangeCallback

    def accepts(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        return all(
            str(change.record.get(column)) == str(value)
            for column, value in self.filters.items()
        )


class InProcessChangeFeed:
    """Deliver change events to subscriptions registered in this process.

    ``filters`` are column equality constraints, the equivalent of a
    ``user_id=eq.<id>`` filter on a hosted realtime feed.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(
        self, table: str, filters: Mapping[str, Any], callback: ChangeCallback
    ) -> SubscriptionHandle:
        handle = SubscriptionHandle(id=next(self._ids), table=table)
        self._subscriptions[handle.id] = _Subscription(table, dict(filters), callback)
        logger.debug("Change subscription %s registered on %s %s", handle.id, table, filters)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        if self._subscriptions.pop(handle.id, None) is not None:
            logger.debug("Change subscription %s removed", handle.id)

    def publish(self, change: ChangeEvent) -> None:
        """Hand ``change`` to every subscription whose filters it satisfies."""

        for subscription in list(self._subscriptions.values()):
            if not subscription.accepts(change):
                continue
            try:
                subscription.callback(change)
            except Exception:
                logger.exception("Change subscriber failed for %s %s", change.table, change.event)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)


__all__ = [
    "DELETE",
    "INSERT",
    "NOTIFICATIONS_TABLE",
    "UPDATE",
    "ChangeCallback",
    "ChangeEvent",
    "ChangeFeed",
    "InProcessChangeFeed",
    "SubscriptionHandle",
]
