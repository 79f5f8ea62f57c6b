"""Tests for the SQLAlchemy repository and the direct store wrapper."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from skillsync.domain.entities import DeliveryRequest, NotificationType
from skillsync.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from skillsync.infrastructure.models import NotificationModel
from skillsync.infrastructure.notifications import (
    INSERT,
    NOTIFICATIONS_TABLE,
    UPDATE,
    InProcessChangeFeed,
)
from skillsync.infrastructure.repositories import DirectNotificationStore, NotificationRepository


@pytest.fixture()
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield build_session_factory(engine)
    engine.dispose()


def _request(user_id: str = "user-1", message: str = "hello") -> DeliveryRequest:
    return DeliveryRequest(user_id=user_id, type=NotificationType.SKILL_MATCH, message=message)


def test_list_for_user_is_scoped_and_newest_first(session_factory) -> None:
    base = datetime(2024, 1, 1, 12, 0, 0)
    with session_factory() as session:
        session.add_all(
            [
                NotificationModel(user_id="user-1", type="system", message="old", created_at=base),
                NotificationModel(
                    user_id="user-1",
                    type="system",
                    message="new",
                    created_at=base + timedelta(minutes=5),
                ),
                NotificationModel(
                    user_id="user-2", type="system", message="other", created_at=base
                ),
            ]
        )
        session.commit()

        repository = NotificationRepository(session)
        notifications = repository.list_for_user("user-1")
        limited = repository.list_for_user("user-1", limit=1)

    assert [n.message for n in notifications] == ["new", "old"]
    assert [n.message for n in limited] == ["new"]
    assert notifications[0].created_at.tzinfo is not None


def test_writes_are_published_on_the_change_feed(session_factory) -> None:
    feed = InProcessChangeFeed()
    events = []
    feed.subscribe(NOTIFICATIONS_TABLE, {"user_id": "user-1"}, events.append)

    with session_factory() as session:
        repository = NotificationRepository(session, change_feed=feed)
        created = repository.create(_request())
        repository.create(_request(user_id="user-2"))
        assert repository.mark_as_read(created.id)
        assert repository.mark_as_read("missing") is False
        assert repository.mark_all_as_read("user-1") == 0

    assert [event.event for event in events] == [INSERT, UPDATE]
    assert events[0].record["id"] == created.id
    assert events[1].record["is_read"] is True


def test_unread_listing_excludes_read_rows(session_factory) -> None:
    with session_factory() as session:
        repository = NotificationRepository(session)
        first = repository.create(_request(message="first"))
        repository.create(_request(message="second"))
        repository.mark_as_read(first.id)

        unread = repository.list_unread_for_user("user-1")

    assert [n.message for n in unread] == ["second"]


@pytest.mark.anyio
async def test_direct_store_runs_operations_off_the_loop(session_factory) -> None:
    store = DirectNotificationStore(session_factory)

    created = await store.insert(_request(message="direct"))
    rows = await store.select_for_user("user-1")
    assert await store.mark_as_read(created.id)
    updated = await store.mark_all_as_read("user-1")

    assert [row.message for row in rows] == ["direct"]
    assert rows[0].type is NotificationType.SKILL_MATCH
    assert updated == 0
