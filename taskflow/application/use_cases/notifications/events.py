"""Producer side of the pipeline: fan an event out into delivery jobs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskflow.domain.entities import (
    JOB_KIND_NOTIFICATION,
    DomainGraph,
    Event,
    EventKind,
)
from taskflow.infrastructure.repositories import (
    DeliveryJobRepository,
    NotificationRepository,
)
from taskflow.utils import now_utc

from .messages import build_payload, render_message
from .recipients import RecipientResolver

logger = logging.getLogger(__name__)

# Reminder kinds are produced by periodic scans; one unread reminder per task
# per window is enough.
_DEDUPLICATED_KINDS = frozenset({EventKind.DUE_DATE, EventKind.PRIORITY})
REMINDER_DEDUP_WINDOW = timedelta(hours=24)


def build_notification_request(
    *,
    recipient_id: int,
    kind: str,
    message: str,
    payload: dict[str, Any] | None = None,
    related_task_id: int | None = None,
    related_project_id: int | None = None,
) -> dict[str, Any]:
    """Return the single-recipient job payload consumed by the worker."""

    return {
        "recipient_id": recipient_id,
        "kind": kind,
        "related_task_id": related_task_id,
        "related_project_id": related_project_id,
        "message": message,
        "payload": dict(payload or {}),
    }


def enqueue_job(session: Session, kind: str, payload: dict[str, Any]) -> str:
    """Store a delivery job; storage errors propagate to the caller."""

    job_id = DeliveryJobRepository(session).enqueue(kind, payload)
    logger.debug("Job published: %s with ID: %s", kind, job_id)
    return job_id


def enqueue_notification(
    session: Session,
    *,
    recipient_id: int,
    kind: str,
    message: str,
    payload: dict[str, Any] | None = None,
    related_task_id: int | None = None,
    related_project_id: int | None = None,
) -> str | None:
    """Queue one notification for ``recipient_id``.

    Returns the job id, or ``None`` when the queue could not be written. The
    failure is logged so the loss is visible, and the caller's business
    action is left to proceed.
    """

    request = build_notification_request(
        recipient_id=recipient_id,
        kind=kind,
        message=message,
        payload=payload,
        related_task_id=related_task_id,
        related_project_id=related_project_id,
    )
    try:
        return enqueue_job(session, JOB_KIND_NOTIFICATION, request)
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Failed to enqueue %s notification for user %s", kind, recipient_id
        )
        return None


def publish_event(session: Session, event: Event, graph: DomainGraph) -> list[str]:
    """Resolve the recipients of ``event`` and enqueue one job per recipient.

    Must be called after the business write that produced ``event``
    committed. Returns the ids of the jobs that were enqueued.
    """

    resolver = RecipientResolver(graph)
    recipients = resolver.resolve(event)
    if not recipients:
        logger.debug("No recipients for %s event by user %s", event.kind.value, event.actor_id)
        return []

    task = resolver.task(event.task_id)
    related_project_id = event.project_id
    if related_project_id is None and task is not None:
        related_project_id = task.project_id

    payload = build_payload(event)
    notifications = NotificationRepository(session)
    since = now_utc() - REMINDER_DEDUP_WINDOW

    job_ids: list[str] = []
    for recipient_id in sorted(recipients):
        if event.kind in _DEDUPLICATED_KINDS and _has_recent_reminder(
            session, notifications, event, recipient_id, since
        ):
            continue
        job_id = enqueue_notification(
            session,
            recipient_id=recipient_id,
            kind=event.kind.value,
            message=render_message(event, recipient_id),
            payload=payload,
            related_task_id=event.task_id,
            related_project_id=related_project_id,
        )
        if job_id is not None:
            job_ids.append(job_id)

    logger.info(
        "Queued %s of %s %s notifications", len(job_ids), len(recipients), event.kind.value
    )
    return job_ids


def _has_recent_reminder(
    session: Session,
    notifications: NotificationRepository,
    event: Event,
    recipient_id: int,
    since: datetime,
) -> bool:
    """Return ``True`` when ``recipient_id`` must not get another reminder.

    A failed lookup counts as a duplicate: the reminder is dropped and logged
    rather than raised into the producer.
    """

    try:
        duplicate = notifications.exists_recent_unread(
            recipient_id=recipient_id,
            kind=event.kind.value,
            related_task_id=event.task_id,
            since=since,
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Failed to check recent %s reminders for user %s; skipping",
            event.kind.value,
            recipient_id,
        )
        return True
    if duplicate:
        logger.debug(
            "Skipping duplicate %s reminder for user %s", event.kind.value, recipient_id
        )
    return duplicate


__all__ = [
    "REMINDER_DEDUP_WINDOW",
    "build_notification_request",
    "enqueue_job",
    "enqueue_notification",
    "publish_event",
]
