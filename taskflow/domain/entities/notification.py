"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Notification:
    """Durable in-app message delivered to a single recipient."""

    id: str | None
    recipient_id: int
    kind: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)
    related_task_id: int | None = None
    related_project_id: int | None = None
    job_id: str | None = None
    is_read: bool = False
    created_at: datetime | None = None


@dataclass
class NotificationPage:
    """Slice of a user's notification feed."""

    items: list[Notification]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


__all__ = ["Notification", "NotificationPage"]
