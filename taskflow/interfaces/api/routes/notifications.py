"""Endpoints and websocket handler for the notification feed."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from taskflow.application.use_cases.notifications import (
    MAX_PAGE_SIZE,
    delete_notification as delete_notification_uc,
    list_notifications as list_notifications_uc,
    mark_all_read as mark_all_read_uc,
    mark_read as mark_read_uc,
    unread_count as unread_count_uc,
)
from taskflow.domain.entities import EventKind, Notification
from taskflow.domain.exceptions import NotFoundError
from taskflow.infrastructure import database
from taskflow.infrastructure.database import get_db
from taskflow.infrastructure.notifications import (
    EVENT_INIT,
    RealtimeEventPublisher,
    realtime_hub,
)
from taskflow.infrastructure.security import resolve_user_id
from taskflow.interfaces.api.dependencies import (
    get_current_user_id,
    get_realtime_publisher,
)
from taskflow.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationPageRead,
    NotificationRead,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or "",
        recipient_id=notification.recipient_id,
        kind=notification.kind,
        related_task_id=notification.related_task_id,
        related_project_id=notification.related_project_id,
        message=notification.message,
        payload=notification.payload or {},
        is_read=notification.is_read,
        created_at=notification.created_at,
    )


@router.get("/", response_model=NotificationPageRead)
def list_notifications(
    unread_only: bool = Query(False),
    kind: EventKind | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> NotificationPageRead:
    """Return the authenticated user's notifications, newest first."""

    result = list_notifications_uc(
        db,
        user_id,
        unread_only=unread_only,
        kind=kind.value if kind else None,
        page=page,
        limit=limit,
    )
    return NotificationPageRead(
        items=[_notification_to_schema(item) for item in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/unread-count", response_model=UnreadCountRead)
def get_unread_count(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> UnreadCountRead:
    return UnreadCountRead(unread_count=unread_count_uc(db, user_id))


@router.patch("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    publisher: RealtimeEventPublisher = Depends(get_realtime_publisher),
) -> MarkAllReadResponse:
    updated = mark_all_read_uc(db, user_id, publisher=publisher)
    return MarkAllReadResponse(updated_count=updated)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    publisher: RealtimeEventPublisher = Depends(get_realtime_publisher),
) -> NotificationRead:
    try:
        notification = mark_read_uc(db, notification_id, user_id, publisher=publisher)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _notification_to_schema(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    publisher: RealtimeEventPublisher = Depends(get_realtime_publisher),
) -> Response:
    try:
        delete_notification_uc(db, notification_id, user_id, publisher=publisher)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams read-state changes to the authenticated user."""

    try:
        user_id = resolve_user_id(websocket.query_params.get("token"))
    except ValueError:
        await websocket.close(code=POLICY_VIOLATION)
        return

    session = database.SessionLocal()
    try:
        pending = unread_count_uc(session, user_id)
    finally:
        session.close()

    await realtime_hub.connect(user_id, websocket)
    try:
        await websocket.send_json({"type": EVENT_INIT, "data": {"unread_count": pending}})
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    _acknowledge(user_id, ids)
                continue
    except WebSocketDisconnect:
        logger.debug("Realtime connection closed for user %s", user_id)
    finally:
        realtime_hub.unregister(user_id, websocket)


def _acknowledge(user_id: int, ids: list[object]) -> None:
    session = database.SessionLocal()
    try:
        for notification_id in dict.fromkeys(str(item) for item in ids if item):
            try:
                mark_read_uc(session, notification_id, user_id)
            except NotFoundError:
                logger.debug(
                    "Ignoring ack for unknown notification %s from user %s",
                    notification_id,
                    user_id,
                )
    finally:
        session.close()
