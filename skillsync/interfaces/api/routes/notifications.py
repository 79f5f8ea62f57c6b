"""Endpoints and websocket handler for notifications."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Response, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from skillsync.config import get_settings
from skillsync.domain.entities import Notification
from skillsync.infrastructure import database
from skillsync.infrastructure.database import get_db
from skillsync.infrastructure.notifications.manager import notification_manager
from skillsync.infrastructure.notifications.publisher import server_change_feed
from skillsync.infrastructure.repositories import NotificationRepository
from skillsync.interfaces.api.schemas import NotificationCreate, NotificationRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

LIST_CACHE_CONTROL = "private, max-age=30"


def _error(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _notification_to_payload(notification: Notification) -> dict[str, Any]:
    return NotificationRead(**notification.to_dict()).model_dump()


def _repository(db: Session) -> NotificationRepository:
    return NotificationRepository(db, change_feed=server_change_feed)


@router.post("")
def create_notification(payload: NotificationCreate, db: Session = Depends(get_db)) -> Any:
    """Insert a notification row for ``userId``."""

    if not payload.is_complete():
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required fields")

    try:
        notification = _repository(db).create(payload.to_request())
    except Exception as exc:
        logger.exception("Failed to create notification for user %s", payload.user_id)
        db.rollback()
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create notification", str(exc)
        )
    return {"success": True, "data": _notification_to_payload(notification)}


@router.get("")
def list_notifications(
    response: Response,
    userId: str | None = None,
    db: Session = Depends(get_db),
) -> Any:
    """Return the most recent notifications of ``userId``, newest first."""

    if not userId:
        return _error(status.HTTP_400_BAD_REQUEST, "User ID is required")

    try:
        notifications = _repository(db).list_for_user(userId, limit=get_settings().list_limit)
    except Exception as exc:
        logger.exception("Failed to fetch notifications for user %s", userId)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch notifications", str(exc)
        )

    response.headers["Cache-Control"] = LIST_CACHE_CONTROL
    return {
        "success": True,
        "data": [_notification_to_payload(notification) for notification in notifications],
    }


@router.patch("/{notification_id}/read")
def mark_notification_read(notification_id: str, db: Session = Depends(get_db)) -> Any:
    try:
        updated = _repository(db).mark_as_read(notification_id)
    except Exception as exc:
        logger.exception("Failed to mark notification %s as read", notification_id)
        db.rollback()
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update notification", str(exc)
        )
    if not updated:
        return _error(status.HTTP_404_NOT_FOUND, "Notification not found")
    return {"success": True}


@router.post("/read-all")
def mark_all_notifications_read(userId: str | None = None, db: Session = Depends(get_db)) -> Any:
    if not userId:
        return _error(status.HTTP_400_BAD_REQUEST, "User ID is required")

    try:
        updated = _repository(db).mark_all_as_read(userId)
    except Exception as exc:
        logger.exception("Failed to mark notifications of user %s as read", userId)
        db.rollback()
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update notifications", str(exc)
        )
    return {"success": True, "updated": updated}


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Stream unread rows, then every change to the user's rows."""

    user_id = websocket.query_params.get("userId")
    if not user_id:
        await websocket.close(code=1008)
        return

    session = database.SessionLocal()
    try:
        pending_notifications = NotificationRepository(session).list_unread_for_user(user_id)
    except Exception:
        logger.exception("Failed to load unread notifications for user %s", user_id)
        await websocket.close(code=1011)
        return
    finally:
        session.close()

    unread = [_notification_to_payload(n) for n in pending_notifications]
    await notification_manager.connect(user_id, websocket, unread)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except Exception:
                continue

            await notification_manager.reply(websocket, message)
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:
        notification_manager.disconnect(user_id, websocket)
        raise


__all__ = ["router"]
