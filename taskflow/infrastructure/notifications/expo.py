"""Thin client for the Expo push notification service."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from taskflow.config import Settings, get_settings
from taskflow.domain.exceptions import PushConfigurationError, TransientDeliveryFailure

logger = logging.getLogger(__name__)

MAX_MESSAGES_PER_REQUEST = 100
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"

_PUSH_TOKEN_PATTERN = re.compile(r"^(?:ExponentPushToken|ExpoPushToken)\[[^\]]+\]$")


def is_expo_push_token(token: Any) -> bool:
    """Return ``True`` when ``token`` looks like an Expo device token."""

    return isinstance(token, str) and bool(_PUSH_TOKEN_PATTERN.match(token.strip()))


@dataclass
class PushMessage:
    """Single push addressed to one device token."""

    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str | None = "default"
    priority: str = "high"
    channel_id: str = "default"
    badge: int | None = 1

    def to_json(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "priority": self.priority,
            "channelId": self.channel_id,
        }
        if self.sound is not None:
            message["sound"] = self.sound
        if self.badge is not None:
            message["badge"] = self.badge
        return message


@dataclass
class PushTicket:
    """Per-message result returned by the provider."""

    token: str
    status: str
    id: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def error_code(self) -> str | None:
        if self.is_ok:
            return None
        code = self.details.get("error") if isinstance(self.details, dict) else None
        return str(code) if code else None

    @property
    def device_not_registered(self) -> bool:
        return self.error_code == DEVICE_NOT_REGISTERED


def chunk_messages(
    messages: Sequence[PushMessage], size: int = MAX_MESSAGES_PER_REQUEST
) -> Iterator[list[PushMessage]]:
    """Yield ``messages`` in provider-sized batches."""

    for start in range(0, len(messages), size):
        yield list(messages[start : start + size])


class ExpoPushClient:
    """Send message batches to the Expo HTTP API."""

    def __init__(
        self,
        *,
        url: str,
        access_token: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
        }
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> "ExpoPushClient":
        settings = settings or get_settings()
        if not settings.expo_access_token:
            raise PushConfigurationError(
                "EXPO_ACCESS_TOKEN is not configured; mobile push is disabled"
            )
        return cls(
            url=settings.expo_push_url,
            access_token=settings.expo_access_token,
            timeout=settings.push_timeout_seconds,
            transport=transport,
        )

    def send_batch(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        """Send one batch and return its tickets in message order.

        Raises :class:`TransientDeliveryFailure` for transport errors,
        non-2xx responses and malformed bodies.
        """

        if not messages:
            return []
        if len(messages) > MAX_MESSAGES_PER_REQUEST:
            raise ValueError(
                f"A push batch cannot exceed {MAX_MESSAGES_PER_REQUEST} messages"
            )

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    self._url,
                    json=[message.to_json() for message in messages],
                    headers=self._headers,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransientDeliveryFailure(
                f"Push provider responded with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientDeliveryFailure(f"Push provider request failed: {exc}") from exc
        except ValueError as exc:
            raise TransientDeliveryFailure("Push provider returned invalid JSON") from exc

        raw_tickets = body.get("data") if isinstance(body, dict) else None
        if not isinstance(raw_tickets, list) or len(raw_tickets) != len(messages):
            errors = body.get("errors") if isinstance(body, dict) else None
            raise TransientDeliveryFailure(
                f"Unexpected push provider response: {errors or body!r}"
            )

        tickets: list[PushTicket] = []
        for message, raw in zip(messages, raw_tickets):
            raw = raw if isinstance(raw, dict) else {}
            details = raw.get("details")
            tickets.append(
                PushTicket(
                    token=message.to,
                    status=str(raw.get("status") or "error"),
                    id=raw.get("id"),
                    message=raw.get("message"),
                    details=details if isinstance(details, dict) else {},
                )
            )
        return tickets


__all__ = [
    "DEVICE_NOT_REGISTERED",
    "ExpoPushClient",
    "MAX_MESSAGES_PER_REQUEST",
    "PushMessage",
    "PushTicket",
    "chunk_messages",
    "is_expo_push_token",
]
