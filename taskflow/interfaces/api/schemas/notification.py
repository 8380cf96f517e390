"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: str
    recipient_id: int
    kind: str
    related_task_id: int | None = None
    related_project_id: int | None = None
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime | None = None


class NotificationPageRead(BaseModel):
    """One page of the authenticated user's notification feed."""

    items: list[NotificationRead]
    page: int
    limit: int
    total: int
    pages: int


class UnreadCountRead(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated_count: int


__all__ = [
    "MarkAllReadResponse",
    "NotificationPageRead",
    "NotificationRead",
    "UnreadCountRead",
]
