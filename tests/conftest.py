"""Shared fixtures for the notification test-suite."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from skillsync.domain.entities import DeliveryRequest, Notification
from skillsync.infrastructure.local_queue import LocalDurableQueue
from skillsync.infrastructure.notifications import EventBus, NotificationApiError
from skillsync.infrastructure.storage import MemoryStorage

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced clock exposing seconds and milliseconds."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now_ms = start_ms

    def seconds(self) -> float:
        return self.now_ms / 1000

    def millis(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


class RecordingSleep:
    """Async sleep replacement that only records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeApi:
    """In-memory stand-in for the remote notification API."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.created: list[Notification] = []
        self.create_calls = 0
        self.list_calls = 0
        self._ids = itertools.count(1)

    async def create(self, request: DeliveryRequest) -> Notification:
        self.create_calls += 1
        if self.fail:
            raise NotificationApiError("service unavailable", status_code=503)
        notification = Notification(
            id=f"remote-{next(self._ids)}",
            user_id=request.user_id,
            type=request.type,
            message=request.message,
            reference_id=request.reference_id,
            is_read=request.is_read,
        )
        self.created.append(notification)
        return notification

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        self.list_calls += 1
        if self.fail:
            raise NotificationApiError("service unavailable", status_code=503)
        return [n.to_dict() for n in self.created if n.user_id == user_id]


class FakeStore:
    """In-memory stand-in for the direct notification store."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.rows: list[Notification] = []
        self.read_ids: list[str] = []
        self._ids = itertools.count(1)

    async def insert(self, request: DeliveryRequest) -> Notification:
        if self.fail:
            raise RuntimeError("database unavailable")
        notification = Notification(
            id=f"db-{next(self._ids)}",
            user_id=request.user_id,
            type=request.type,
            message=request.message,
            reference_id=request.reference_id,
        )
        self.rows.append(notification)
        return notification

    async def select_for_user(self, user_id: str, *, limit: int | None = 50) -> list[Notification]:
        if self.fail:
            raise RuntimeError("database unavailable")
        return [n for n in self.rows if n.user_id == user_id][:limit]

    async def mark_as_read(self, notification_id: str) -> bool:
        if self.fail:
            raise RuntimeError("database unavailable")
        self.read_ids.append(notification_id)
        return True

    async def mark_all_as_read(self, user_id: str) -> int:
        if self.fail:
            raise RuntimeError("database unavailable")
        return 0


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def local_queue(storage: MemoryStorage, event_bus: EventBus, clock: FakeClock) -> LocalDurableQueue:
    return LocalDurableQueue(storage, event_bus=event_bus, clock_ms=clock.millis)


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
