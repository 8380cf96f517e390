"""Aggregate application use cases."""

from .notifications import (
    NotificationDeliveryHandler,
    enqueue_notification,
    publish_event,
)

__all__ = [
    "NotificationDeliveryHandler",
    "enqueue_notification",
    "publish_event",
]
