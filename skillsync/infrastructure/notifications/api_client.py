"""HTTP client for the remote notification API."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from skillsync.domain.entities import DeliveryRequest, Notification

logger = logging.getLogger(__name__)

NOTIFICATIONS_PATH = "/api/notifications"


class NotificationApiError(RuntimeError):
    """Raised when the remote API does not confirm an operation."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotificationApiClient:
    """Create and list notifications through the remote API.

    The client does not own ``http_client`` when one is provided.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def create(self, request: DeliveryRequest) -> Notification:
        """Create a notification and return the server assigned record."""

        body = await self._request(
            "POST",
            NOTIFICATIONS_PATH,
            json=request.to_api_payload(),
            headers={"Cache-Control": "no-store"},
        )
        data = body.get("data")
        if not isinstance(data, dict):
            raise NotificationApiError(
                "Create response did not include the notification", body=json.dumps(body)
            )
        return Notification.from_dict(data)

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        """Return the raw notification rows of ``user_id``."""

        body = await self._request(
            "GET",
            NOTIFICATIONS_PATH,
            params={"userId": user_id},
            headers={"Cache-Control": "no-cache"},
        )
        data = body.get("data")
        if not body.get("success") or not isinstance(data, list):
            raise NotificationApiError(
                "List response was not successful", body=json.dumps(body)
            )
        return [row for row in data if isinstance(row, dict)]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NotificationApiError(f"{method} {url} failed: {exc}") from exc

        text = response.text
        if not response.is_success:
            raise NotificationApiError(
                f"{method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
                body=text,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationApiError(
                f"{method} {url} returned an unparseable body",
                status_code=response.status_code,
                body=text,
            ) from exc
        if not isinstance(body, dict):
            raise NotificationApiError(
                f"{method} {url} returned an unexpected body",
                status_code=response.status_code,
                body=text,
            )
        return body


__all__ = ["NOTIFICATIONS_PATH", "NotificationApiClient", "NotificationApiError"]
