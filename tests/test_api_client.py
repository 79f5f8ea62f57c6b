"""Tests for the remote notification API client."""

from __future__ import annotations

import json

import httpx
import pytest

from skillsync.domain.entities import DeliveryRequest, NotificationType
from skillsync.infrastructure.notifications import NotificationApiClient, NotificationApiError

pytestmark = pytest.mark.anyio

BASE_URL = "http://api.test"


def _client(handler) -> NotificationApiClient:
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return NotificationApiClient(BASE_URL, http_client=http_client)


def _row(**overrides) -> dict:
    row = {
        "id": "n-1",
        "user_id": "user-1",
        "type": "connection_accepted",
        "message": "Ada accepted your connection request",
        "reference_id": "conn-1",
        "is_read": False,
        "created_at": "2024-03-01T12:00:00Z",
    }
    row.update(overrides)
    return row


async def test_create_posts_camel_case_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": _row()})

    client = _client(handler)
    notification = await client.create(
        DeliveryRequest(
            user_id="user-1",
            type=NotificationType.CONNECTION_ACCEPTED,
            message="Ada accepted your connection request",
            reference_id="conn-1",
        )
    )

    assert notification.id == "n-1"
    assert notification.type is NotificationType.CONNECTION_ACCEPTED
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/notifications"
    assert request.headers["Cache-Control"] == "no-store"
    assert json.loads(request.content) == {
        "userId": "user-1",
        "type": "connection_accepted",
        "message": "Ada accepted your connection request",
        "isRead": False,
        "referenceId": "conn-1",
    }


async def test_create_omits_empty_reference() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "data": _row(reference_id=None)})

    await _client(handler).create(
        DeliveryRequest(user_id="user-1", type=NotificationType.SYSTEM, message="hi")
    )

    assert "referenceId" not in bodies[0]


async def test_list_sends_user_id_query() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["userId"] == "user-1"
        return httpx.Response(200, json={"success": True, "data": [_row(), "noise"]})

    rows = await _client(handler).list_for_user("user-1")

    assert rows == [_row()]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "Failed to create notification"}),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"success": True}),
    ],
)
async def test_create_failures_raise_api_error(response: httpx.Response) -> None:
    client = _client(lambda request: response)

    with pytest.raises(NotificationApiError):
        await client.create(
            DeliveryRequest(user_id="user-1", type=NotificationType.SYSTEM, message="hi")
        )


async def test_unsuccessful_list_raises_with_status() -> None:
    client = _client(lambda request: httpx.Response(400, json={"error": "User ID is required"}))

    with pytest.raises(NotificationApiError) as excinfo:
        await client.list_for_user("user-1")

    assert excinfo.value.status_code == 400
    assert "User ID is required" in excinfo.value.body


async def test_transport_errors_are_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotificationApiError):
        await _client(handler).list_for_user("user-1")
