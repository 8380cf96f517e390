"""Realtime and push delivery helpers for the infrastructure layer."""

from .expo import (
    DEVICE_NOT_REGISTERED,
    ExpoPushClient,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_expo_push_token,
)
from .manager import RealtimeConnection, RealtimeHub, realtime_hub
from .push import DEFAULT_PUSH_TITLE, PushDispatcher, PushRequest, push_title_for
from .realtime import (
    EVENT_ALL_NOTIFICATIONS_READ,
    EVENT_INIT,
    EVENT_NEW_NOTIFICATION,
    EVENT_NOTIFICATION_DELETED,
    EVENT_NOTIFICATION_READ,
    RealtimeEventPublisher,
    realtime_event_publisher,
    serialize_notification,
)

__all__ = [
    "DEFAULT_PUSH_TITLE",
    "DEVICE_NOT_REGISTERED",
    "EVENT_ALL_NOTIFICATIONS_READ",
    "EVENT_INIT",
    "EVENT_NEW_NOTIFICATION",
    "EVENT_NOTIFICATION_DELETED",
    "EVENT_NOTIFICATION_READ",
    "ExpoPushClient",
    "PushDispatcher",
    "PushMessage",
    "PushRequest",
    "PushTicket",
    "RealtimeConnection",
    "RealtimeEventPublisher",
    "RealtimeHub",
    "chunk_messages",
    "is_expo_push_token",
    "push_title_for",
    "realtime_event_publisher",
    "realtime_hub",
    "serialize_notification",
]
