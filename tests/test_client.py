"""End-to-end tests of the wired notification client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from skillsync.client import NotificationClient
from skillsync.config import Settings
from skillsync.infrastructure.identity import CURRENT_USER_KEY
from skillsync.infrastructure.notifications import NEW_NOTIFICATION, STORAGE_CHANGED
from skillsync.infrastructure.storage import MemoryStorage

pytestmark = pytest.mark.anyio


class RemoteApi:
    """``httpx.MockTransport`` handler emulating the notification endpoints."""

    def __init__(self) -> None:
        self.available = True
        self.rows: list[dict] = []
        self.list_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if not self.available:
            return httpx.Response(503, json={"error": "unavailable"})
        if request.method == "POST":
            payload = json.loads(request.content)
            row = {
                "id": f"remote-{len(self.rows) + 1}",
                "user_id": payload["userId"],
                "type": payload["type"],
                "message": payload["message"],
                "reference_id": payload.get("referenceId"),
                "is_read": payload.get("isRead", False),
                "created_at": "2024-05-01T08:00:00Z",
            }
            self.rows.append(row)
            return httpx.Response(200, json={"success": True, "data": row})
        self.list_calls += 1
        user_id = request.url.params.get("userId")
        return httpx.Response(
            200,
            json={"success": True, "data": [row for row in self.rows if row["user_id"] == user_id]},
        )


async def _no_sleep(delay: float) -> None:
    return None


@pytest.fixture()
def remote() -> RemoteApi:
    return RemoteApi()


@pytest.fixture()
async def client(remote):
    http_client = httpx.AsyncClient(
        base_url="http://api.test", transport=httpx.MockTransport(remote)
    )
    notification_client = NotificationClient.create(
        lambda: "user-1",
        Settings(api_base_url="http://api.test"),
        storage=MemoryStorage(),
        http_client=http_client,
        sleep=_no_sleep,
    )
    yield notification_client
    await notification_client.aclose()
    await http_client.aclose()


async def test_delivery_goes_through_the_remote_api(client, remote) -> None:
    notification = await client.deliver("user-2", "connection_request", "Ada wants to connect")

    assert notification is not None
    assert notification.id == "remote-1"
    assert remote.rows[0]["user_id"] == "user-2"


async def test_outage_is_absorbed_by_the_local_fallback(client, remote) -> None:
    remote.available = False

    delivered = await client.retry_deliver("user-2", "system", "Scheduled maintenance")

    # Without a direct store the local fallback counts as delivered.
    assert delivered is True
    assert not client.local_queue.has_pending()
    assert [n.message for n in client.local_queue.list_local_notifications("user-2")] == [
        "Scheduled maintenance"
    ]


async def test_connection_helpers_compose_messages(client, remote) -> None:
    assert await client.notify_connection_request("user-2", "Ada", "conn-1")
    assert await client.notify_connection_accepted("user-3", "Grace", "conn-1")

    assert [(row["user_id"], row["type"], row["message"]) for row in remote.rows] == [
        ("user-2", "connection_request", "Ada sent you a connection request"),
        ("user-3", "connection_accepted", "Grace accepted your connection request"),
    ]


async def test_new_message_shows_local_echo_immediately(client, remote) -> None:
    announced = []
    client.event_bus.subscribe(NEW_NOTIFICATION, announced.append)

    assert await client.notify_new_message("user-2", "Ada", "conv-7")

    assert remote.rows[0]["message"] == "Ada sent you a message"
    assert remote.rows[0]["reference_id"] == "conv-7"
    [echo] = announced
    assert echo.is_local
    assert echo.recipient_id == "user-2"
    assert echo.sender_name == "Ada"


async def test_start_resolves_and_caches_the_current_user(client, remote) -> None:
    await client.deliver("user-1", "system", "welcome")

    assert await client.start()
    await client.subscriptions.wait_idle()

    assert client.subscriptions.user_id == "user-1"
    assert [n.message for n in client.feed.notifications] == ["welcome"]
    assert client.storage.get(CURRENT_USER_KEY) == "user-1"
    assert client.monitor.running


async def test_one_local_write_causes_one_refetch(remote) -> None:
    http_client = httpx.AsyncClient(
        base_url="http://api.test", transport=httpx.MockTransport(remote)
    )
    client = NotificationClient.create(
        lambda: "user-1",
        Settings(api_base_url="http://api.test", realtime_debounce_seconds=0.05),
        storage=MemoryStorage(),
        http_client=http_client,
        sleep=_no_sleep,
    )
    storage_keys = []
    client.event_bus.subscribe(STORAGE_CHANGED, storage_keys.append)
    assert await client.start()
    await client.subscriptions.wait_idle()
    assert remote.list_calls == 1

    client.local_queue.store_local_notification(user_id="user-1", type="system", message="x")
    await asyncio.sleep(0.15)
    await client.subscriptions.wait_idle()
    assert remote.list_calls == 2

    assert await client.notify_new_message("user-1", "Ada", "conv-7")
    await asyncio.sleep(0.15)
    await client.subscriptions.wait_idle()
    assert remote.list_calls == 3

    assert storage_keys == []
    await client.aclose()
    await http_client.aclose()


async def test_start_without_a_user_is_refused(remote) -> None:
    http_client = httpx.AsyncClient(
        base_url="http://api.test", transport=httpx.MockTransport(remote)
    )
    client = NotificationClient.create(
        lambda: None,
        Settings(api_base_url="http://api.test"),
        storage=MemoryStorage(),
        http_client=http_client,
    )

    assert await client.start() is False
    assert client.subscriptions.user_id is None
    await client.aclose()
    await http_client.aclose()
