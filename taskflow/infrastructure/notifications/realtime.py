"""Helpers to broadcast realtime events to connected clients."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Iterable, Set

from anyio import from_thread

from taskflow.domain.entities import Notification

from .manager import RealtimeHub, realtime_hub

logger = logging.getLogger(__name__)

EVENT_INIT = "INIT"
EVENT_NEW_NOTIFICATION = "NEW_NOTIFICATION"
EVENT_NOTIFICATION_READ = "NOTIFICATION_READ"
EVENT_ALL_NOTIFICATIONS_READ = "ALL_NOTIFICATIONS_READ"
EVENT_NOTIFICATION_DELETED = "NOTIFICATION_DELETED"


class RealtimeEventPublisher:
    """Dispatch ``{type, data}`` envelopes to websocket subscribers.

    Dispatching is fire-and-forget: it never raises, and a user without a
    live connection simply receives nothing.
    """

    def __init__(self, hub: RealtimeHub) -> None:
        self._hub = hub
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def hub(self) -> RealtimeHub:
        return self._hub

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Remember the loop owning the websockets so threads can reach it."""

        self._loop = loop

    def dispatch(self, user_id: int, *, event_type: str, payload: Any) -> None:
        """Schedule a realtime ``event_type`` event for ``user_id``."""

        if not user_id:
            return

        message = {"type": event_type, "data": copy.deepcopy(payload)}
        try:
            self._schedule_send(user_id, message)
        except Exception:
            logger.warning(
                "Realtime %s event for user %s could not be scheduled",
                event_type,
                user_id,
                exc_info=True,
            )

    def dispatch_many(
        self,
        user_ids: Iterable[int],
        *,
        event_type: str,
        payload: Any,
    ) -> None:
        """Broadcast an event to multiple ``user_ids``."""

        seen: Set[int] = set()
        for user_id in user_ids:
            if not user_id or user_id in seen:
                continue
            seen.add(user_id)
            self.dispatch(user_id, event_type=event_type, payload=payload)

    def dispatch_notification(self, notification: Notification) -> None:
        """Announce a freshly stored notification to its recipient."""

        self.dispatch(
            notification.recipient_id,
            event_type=EVENT_NEW_NOTIFICATION,
            payload=serialize_notification(notification),
        )

    def _schedule_send(self, user_id: int, message: dict[str, Any]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(self._hub.send_to_user(user_id, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return

        loop = self._loop
        if loop is not None and not loop.is_closed() and loop.is_running():
            asyncio.run_coroutine_threadsafe(
                self._hub.send_to_user(user_id, message), loop
            )
            return

        # Threadpool workers started by anyio can reach the event loop directly.
        try:
            from_thread.run(self._hub.send_to_user, user_id, message)
        except RuntimeError:
            logger.debug(
                "No event loop reachable; skipping realtime event for user %s", user_id
            )


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation of ``notification`` used on the wire."""

    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "kind": notification.kind,
        "related_task_id": notification.related_task_id,
        "related_project_id": notification.related_project_id,
        "message": notification.message,
        "payload": notification.payload or {},
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
    }


realtime_event_publisher = RealtimeEventPublisher(realtime_hub)


__all__ = [
    "EVENT_ALL_NOTIFICATIONS_READ",
    "EVENT_INIT",
    "EVENT_NEW_NOTIFICATION",
    "EVENT_NOTIFICATION_DELETED",
    "EVENT_NOTIFICATION_READ",
    "RealtimeEventPublisher",
    "realtime_event_publisher",
    "serialize_notification",
]
