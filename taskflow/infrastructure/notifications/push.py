"""Best-effort mobile push delivery layered on top of stored notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from sqlalchemy.orm import Session

from taskflow.config import Settings, get_settings
from taskflow.domain.entities import EventKind
from taskflow.domain.exceptions import (
    PermanentRecipientFailure,
    PushConfigurationError,
    TransientDeliveryFailure,
)
from taskflow.infrastructure.repositories import PushTokenRepository

from .expo import ExpoPushClient, PushMessage, PushTicket, chunk_messages, is_expo_push_token

logger = logging.getLogger(__name__)

DEFAULT_PUSH_TITLE = "Taskflow Notification"

_PUSH_TITLES: dict[str, str] = {
    EventKind.PROJECT_INVITE.value: "📋 Project Invitation",
    EventKind.ASSIGNMENT.value: "✅ New Task",
    EventKind.COMMENT.value: "💬 New Comment",
    EventKind.REPLY.value: "💬 New Reply",
    EventKind.PROJECT_COMPLETED.value: "🎉 Project Completed",
    EventKind.DUE_DATE.value: "⏰ Due Soon",
}


def push_title_for(kind: str | EventKind | None) -> str:
    """Return the push title used for notifications of ``kind``."""

    if isinstance(kind, EventKind):
        kind = kind.value
    return _PUSH_TITLES.get(kind or "", DEFAULT_PUSH_TITLE)


@dataclass
class PushRequest:
    """Push addressed to a user rather than to a device token."""

    user_id: int
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


class PushDispatcher:
    """Resolve device tokens, batch pushes and reconcile provider tickets.

    Nothing raised by the provider escapes :meth:`send` or
    :meth:`send_many`; failures are logged and, for unregistered devices,
    the stored token is cleared.
    """

    def __init__(
        self,
        client: ExpoPushClient | None,
        session_factory: Callable[[], Session],
    ) -> None:
        self._client = client
        self._session_factory = session_factory

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], Session],
        settings: Settings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> "PushDispatcher":
        settings = settings or get_settings()
        if not settings.push_enabled:
            logger.info("Mobile push disabled by configuration")
            return cls(None, session_factory)
        try:
            client = ExpoPushClient.from_settings(settings, transport=transport)
        except PushConfigurationError as exc:
            logger.warning("%s", exc)
            return cls(None, session_factory)
        return cls(client, session_factory)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def send(self, user_id: int, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        self.send_many([PushRequest(user_id=user_id, title=title, body=body, data=data or {})])

    def send_many(self, requests: Iterable[PushRequest]) -> None:
        if self._client is None:
            return

        session = self._session_factory()
        try:
            messages = self._build_messages(PushTokenRepository(session), requests)
            if not messages:
                return
            tickets = self._send_chunks(messages)
            self._reconcile(PushTokenRepository(session), tickets)
        except Exception:
            logger.exception("Unexpected error while sending push notifications")
        finally:
            session.close()

    @staticmethod
    def _build_messages(
        tokens: PushTokenRepository, requests: Iterable[PushRequest]
    ) -> list[PushMessage]:
        messages: list[PushMessage] = []
        for request in requests:
            token = tokens.get_token(request.user_id)
            if not token:
                logger.debug("User %s has no push token, skipping push", request.user_id)
                continue
            if not is_expo_push_token(token):
                logger.warning("Ignoring malformed push token for user %s", request.user_id)
                continue
            messages.append(
                PushMessage(
                    to=token.strip(),
                    title=request.title,
                    body=request.body,
                    data=request.data,
                )
            )
        return messages

    def _send_chunks(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        tickets: list[PushTicket] = []
        for chunk in chunk_messages(messages):
            try:
                tickets.extend(self._client.send_batch(chunk))
            except TransientDeliveryFailure as exc:
                logger.error("Error sending push chunk of %s messages: %s", len(chunk), exc)
        return tickets

    @staticmethod
    def _reconcile(tokens: PushTokenRepository, tickets: Iterable[PushTicket]) -> None:
        for ticket in tickets:
            if ticket.is_ok:
                logger.debug("Push ticket accepted: %s", ticket.id)
                continue
            if ticket.device_not_registered:
                failure = PermanentRecipientFailure(ticket.token, ticket.error_code or "")
                cleared = tokens.clear_token(failure.token)
                logger.warning("%s; cleared token on %s profile(s)", failure, cleared)
                continue
            logger.error(
                "Push ticket error %s: %s",
                ticket.error_code or "unknown",
                ticket.message or "no details",
            )


__all__ = [
    "DEFAULT_PUSH_TITLE",
    "PushDispatcher",
    "PushRequest",
    "push_title_for",
]
