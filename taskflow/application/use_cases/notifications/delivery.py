"""Worker-side handler that turns a queued request into a delivered notification."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from taskflow.domain.entities import DeliveryJob, Notification
from taskflow.infrastructure.notifications import (
    PushDispatcher,
    RealtimeEventPublisher,
    push_title_for,
    realtime_event_publisher,
)
from taskflow.infrastructure.repositories import NotificationRepository

from .inbox import create_notification

logger = logging.getLogger(__name__)


class NotificationDeliveryHandler:
    """Handle ``notification`` jobs.

    The notification row is committed before push or realtime delivery is
    attempted; those two channels are best effort and never fail the job.
    """

    def __init__(
        self,
        push: PushDispatcher | None = None,
        publisher: RealtimeEventPublisher | None = None,
    ) -> None:
        self._push = push
        self._publisher = publisher or realtime_event_publisher

    def __call__(self, session: Session, job: DeliveryJob) -> Notification:
        request = _parse_request(job.payload)

        notification = NotificationRepository(session).get_by_job(job.id)
        if notification is not None:
            logger.info("Notification for job %s already stored; resending side effects", job.id)
        else:
            notification = create_notification(session, job_id=job.id, **request)
            logger.info(
                "Notification %s stored for user %s", notification.id, notification.recipient_id
            )

        self._send_push(notification)
        self._announce(notification)
        return notification

    def _send_push(self, notification: Notification) -> None:
        if self._push is None:
            return
        data: dict[str, Any] = {
            **(notification.payload or {}),
            "notification_id": notification.id,
            "type": notification.kind,
            "task_id": notification.related_task_id,
            "project_id": notification.related_project_id,
        }
        try:
            self._push.send(
                notification.recipient_id,
                push_title_for(notification.kind),
                notification.message,
                data,
            )
        except Exception:
            logger.exception("Push delivery failed for notification %s", notification.id)

    def _announce(self, notification: Notification) -> None:
        try:
            self._publisher.dispatch_notification(notification)
        except Exception:
            logger.warning(
                "Realtime delivery failed for notification %s", notification.id, exc_info=True
            )


def _parse_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Validate a job payload and return the arguments of ``create_notification``."""

    try:
        recipient_id = int(payload["recipient_id"])
        kind = str(payload["kind"])
        message = str(payload["message"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed notification request: {exc}") from exc

    extra = payload.get("payload") or {}
    if not isinstance(extra, dict):
        raise ValueError("Malformed notification request: payload must be an object")

    return {
        "recipient_id": recipient_id,
        "kind": kind,
        "message": message,
        "payload": extra,
        "related_task_id": _optional_int(payload.get("related_task_id")),
        "related_project_id": _optional_int(payload.get("related_project_id")),
    }


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


__all__ = ["NotificationDeliveryHandler"]
