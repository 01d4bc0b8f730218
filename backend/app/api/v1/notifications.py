"""Notifications API router.

All endpoints are scoped to the authenticated user; another user's
notification id answers 404.

Endpoints:
- GET /notifications: list, newest first (paginated)
- GET /notifications/unread-count
- PUT /notifications/mark-all-read
- PUT /notifications/{notification_id}/read
- DELETE /notifications/clear-all
- DELETE /notifications/{notification_id}
- WS /notifications/ws: realtime push for the authenticated user
"""

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.api.deps import (
    AuthenticationFailed,
    CurrentUserId,
    DbSession,
    Dispatcher,
    resolve_user_id,
)
from app.core.config import settings
from app.core.database import async_session_factory
from app.core.pagination import Pagination
from app.core.realtime import connection_manager
from app.core.responses import DataResponse, ListResponse
from app.schemas.notification import BulkUpdateResult, NotificationRead, UnreadCount

router = APIRouter()


# =============================================================================
# Read
# =============================================================================


@router.get("")
async def list_notifications(
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
    pagination: Pagination,
) -> ListResponse[NotificationRead]:
    """List the user's notifications, newest first."""
    items = await dispatcher.list_for_user(db, user_id)
    return ListResponse(
        data=pagination.slice(items),
        meta=pagination.meta(len(items)),
    )


@router.get("/unread-count")
async def get_unread_count(
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[UnreadCount]:
    count = await dispatcher.unread_count(db, user_id)
    return DataResponse(data=UnreadCount(count=count))


# =============================================================================
# Update
# =============================================================================


@router.put("/mark-all-read")
async def mark_all_read(
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[BulkUpdateResult]:
    affected = await dispatcher.mark_all_read(db, user_id)
    return DataResponse(data=BulkUpdateResult(affected=affected))


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: uuid.UUID,
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[dict]:
    """Mark one notification read. 404 when missing or not the user's."""
    await dispatcher.mark_read(db, notification_id, user_id)
    return DataResponse(data={"id": str(notification_id), "is_read": True})


# =============================================================================
# Delete
# =============================================================================


@router.delete("/clear-all")
async def clear_all(
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[BulkUpdateResult]:
    affected = await dispatcher.delete_all(db, user_id)
    return DataResponse(data=BulkUpdateResult(affected=affected))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: uuid.UUID,
    user_id: CurrentUserId,
    db: DbSession,
    dispatcher: Dispatcher,
) -> None:
    """Delete one notification. 404 when missing or not the user's."""
    await dispatcher.delete(db, notification_id, user_id)


# =============================================================================
# Realtime
# =============================================================================


async def _authenticate_websocket(websocket: WebSocket) -> uuid.UUID | None:
    async with async_session_factory() as db:
        try:
            return await resolve_user_id(
                websocket.cookies.get(settings.auth_cookie_name), db
            )
        except AuthenticationFailed:
            return None


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket) -> None:
    """Push channel for the user's notifications.

    The handshake is authenticated with the session cookie. Incoming
    frames are read and discarded; the socket stays registered until the
    client disconnects.
    """
    user_id = await _authenticate_websocket(websocket)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await connection_manager.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        connection_manager.disconnect(user_id, websocket)
