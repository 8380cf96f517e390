"""Public helpers for producing, delivering and reading notifications."""

from .delivery import NotificationDeliveryHandler
from .events import (
    REMINDER_DEDUP_WINDOW,
    build_notification_request,
    enqueue_job,
    enqueue_notification,
    publish_event,
)
from .inbox import (
    MAX_PAGE_SIZE,
    create_notification,
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)
from .messages import build_payload, render_message
from .recipients import RecipientResolver, resolve_recipients
from .retention import DEFAULT_RETENTION_DAYS, sweep_read_notifications

__all__ = [
    "DEFAULT_RETENTION_DAYS",
    "MAX_PAGE_SIZE",
    "NotificationDeliveryHandler",
    "REMINDER_DEDUP_WINDOW",
    "RecipientResolver",
    "build_notification_request",
    "build_payload",
    "create_notification",
    "delete_notification",
    "enqueue_job",
    "enqueue_notification",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "publish_event",
    "render_message",
    "resolve_recipients",
    "sweep_read_notifications",
    "unread_count",
]
