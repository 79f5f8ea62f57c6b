"""Tests for the delivery client fallback chain."""

from __future__ import annotations

import pytest
from conftest import START_MS, FakeApi, FakeStore

from skillsync.application.use_cases.notifications import DeliveryClient, RetryEngine
from skillsync.domain.entities import DeliveryRequest, NotificationOrigin, NotificationType
from skillsync.utils import from_epoch_millis

pytestmark = pytest.mark.anyio


async def test_api_success_skips_other_channels(local_queue) -> None:
    api, store = FakeApi(), FakeStore()
    client = DeliveryClient(api=api, store=store, local_queue=local_queue)

    notification = await client.deliver("user-1", "message", "hi", "conv-1")

    assert notification is not None
    assert notification.id == "remote-1"
    assert notification.type is NotificationType.MESSAGE
    assert store.rows == []
    assert local_queue.list_local_notifications("user-1") == []


async def test_store_is_used_when_api_fails(local_queue) -> None:
    store = FakeStore()
    client = DeliveryClient(api=FakeApi(fail=True), store=store, local_queue=local_queue)

    notification = await client.deliver("user-1", NotificationType.SYSTEM, "maintenance")

    assert notification is not None
    assert notification.id == "db-1"
    assert [row.message for row in store.rows] == ["maintenance"]


async def test_local_fallback_when_all_remote_channels_fail(local_queue) -> None:
    client = DeliveryClient(
        api=FakeApi(fail=True), store=FakeStore(fail=True), local_queue=local_queue
    )

    notification = await client.deliver("user-1", "skill_match", "New match")

    assert notification is not None
    assert notification.origin is NotificationOrigin.LOCAL
    assert notification.id.startswith("local-")
    assert [n.message for n in local_queue.list_local_notifications("user-1")] == ["New match"]


async def test_local_fallback_record_is_unread_and_stamped_now(local_queue) -> None:
    client = DeliveryClient(
        api=FakeApi(fail=True), store=FakeStore(fail=True), local_queue=local_queue
    )

    notification = await client.deliver("u1", "message", "hi", "conv-1")

    assert notification is not None
    assert notification.is_read is False
    assert notification.user_id == "u1"
    assert notification.type is NotificationType.MESSAGE
    assert notification.reference_id == "conv-1"
    assert notification.created_at == from_epoch_millis(START_MS)
    [stored] = local_queue.list_local_notifications("u1")
    assert stored.id == notification.id
    assert stored.is_read is False


async def test_unknown_type_is_coerced_to_system(local_queue) -> None:
    api = FakeApi()
    client = DeliveryClient(api=api, store=None, local_queue=local_queue)

    await client.deliver("user-1", "carrier_pigeon", "hello")

    assert api.created[0].type is NotificationType.SYSTEM


async def test_missing_user_id_is_rejected(local_queue) -> None:
    api = FakeApi()
    client = DeliveryClient(api=api, store=None, local_queue=local_queue)

    assert await client.deliver("", "system", "hello") is None
    assert api.create_calls == 0


async def test_retried_send_succeeds_through_local_fallback(
    local_queue, clock, recording_sleep
) -> None:
    client = DeliveryClient(
        api=FakeApi(fail=True), store=FakeStore(fail=True), local_queue=local_queue
    )
    engine = RetryEngine(
        client.deliver_request, local_queue, sleep=recording_sleep, clock_ms=clock.millis
    )

    delivered = await engine.retry_deliver(
        DeliveryRequest(user_id="user-1", type=NotificationType.SYSTEM, message="hello")
    )

    assert delivered is True
    assert recording_sleep.delays == []
    assert local_queue.list_pending() == []
    assert len(local_queue.list_local_notifications("user-1")) == 1


async def test_mark_as_read_routes_by_id_namespace(local_queue) -> None:
    store = FakeStore()
    client = DeliveryClient(api=None, store=store, local_queue=local_queue)
    local = local_queue.store_local_notification(user_id="user-1", type="system", message="x")

    assert await client.mark_as_read(local.id)
    assert await client.mark_as_read("remote-7")

    assert store.read_ids == ["remote-7"]
    assert local_queue.list_local_notifications("user-1")[0].is_read


async def test_mark_as_read_failures_return_false(local_queue) -> None:
    client = DeliveryClient(api=None, store=FakeStore(fail=True), local_queue=local_queue)

    assert await client.mark_as_read("remote-7") is False
    assert await client.mark_all_as_read("user-1") is True
    assert await client.mark_all_as_read("") is False
