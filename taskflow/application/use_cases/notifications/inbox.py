"""Use cases backing a user's notification feed."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from taskflow.domain.entities import Notification, NotificationPage
from taskflow.domain.exceptions import NotificationNotFoundError
from taskflow.infrastructure.notifications import (
    EVENT_ALL_NOTIFICATIONS_READ,
    EVENT_NOTIFICATION_DELETED,
    EVENT_NOTIFICATION_READ,
    RealtimeEventPublisher,
    realtime_event_publisher,
)
from taskflow.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def create_notification(
    session: Session,
    *,
    recipient_id: int,
    kind: str,
    message: str,
    payload: dict[str, Any] | None = None,
    related_task_id: int | None = None,
    related_project_id: int | None = None,
    job_id: str | None = None,
) -> Notification:
    """Persist a notification and return it once committed."""

    notification = Notification(
        id=None,
        recipient_id=recipient_id,
        kind=kind,
        message=message,
        payload=payload or {},
        related_task_id=related_task_id,
        related_project_id=related_project_id,
        job_id=job_id,
    )
    return NotificationRepository(session).create(notification)


def list_notifications(
    session: Session,
    user_id: int,
    *,
    unread_only: bool = False,
    kind: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> NotificationPage:
    """Return the requested page of ``user_id``'s notifications, newest first."""

    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    items, total = NotificationRepository(session).list_for_user(
        user_id,
        unread_only=unread_only,
        kind=kind,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return NotificationPage(items=list(items), page=page, limit=limit, total=total)


def unread_count(session: Session, user_id: int) -> int:
    return NotificationRepository(session).count_unread(user_id)


def mark_read(
    session: Session,
    notification_id: str,
    user_id: int,
    *,
    publisher: RealtimeEventPublisher | None = None,
) -> Notification:
    """Mark one of the caller's notifications as read."""

    notification = NotificationRepository(session).mark_as_read(
        notification_id, user_id=user_id
    )
    if notification is None:
        raise NotificationNotFoundError(notification_id)

    _broadcast(
        publisher,
        user_id,
        EVENT_NOTIFICATION_READ,
        {"notification_id": notification_id},
    )
    return notification


def mark_all_read(
    session: Session,
    user_id: int,
    *,
    publisher: RealtimeEventPublisher | None = None,
) -> int:
    """Mark every unread notification of ``user_id`` as read.

    Returns how many notifications changed state, so repeated calls return 0.
    """

    updated = NotificationRepository(session).mark_all_as_read(user_id)
    logger.info("%s notifications marked as read for user %s", updated, user_id)
    _broadcast(
        publisher,
        user_id,
        EVENT_ALL_NOTIFICATIONS_READ,
        {"updated_count": updated},
    )
    return updated


def delete_notification(
    session: Session,
    notification_id: str,
    user_id: int,
    *,
    publisher: RealtimeEventPublisher | None = None,
) -> None:
    if not NotificationRepository(session).delete(notification_id, user_id=user_id):
        raise NotificationNotFoundError(notification_id)

    _broadcast(
        publisher,
        user_id,
        EVENT_NOTIFICATION_DELETED,
        {"notification_id": notification_id},
    )


def _broadcast(
    publisher: RealtimeEventPublisher | None,
    user_id: int,
    event_type: str,
    payload: dict[str, Any],
) -> None:
    publisher = publisher or realtime_event_publisher
    try:
        publisher.dispatch(user_id, event_type=event_type, payload=payload)
    except Exception:
        logger.warning(
            "Realtime %s broadcast failed for user %s", event_type, user_id, exc_info=True
        )


__all__ = [
    "MAX_PAGE_SIZE",
    "create_notification",
    "delete_notification",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "unread_count",
]
