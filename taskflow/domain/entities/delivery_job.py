"""Domain entity representing a queued delivery job."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

JOB_STATUS_PENDING = "PENDING"
JOB_STATUS_PROCESSING = "PROCESSING"
JOB_STATUS_COMPLETED = "COMPLETED"
JOB_STATUS_FAILED = "FAILED"

JOB_STATUSES = (
    JOB_STATUS_PENDING,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
)

JOB_KIND_NOTIFICATION = "notification"


@dataclass
class DeliveryJob:
    """Unit of work consumed by the delivery worker."""

    id: str | None
    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    status: str = JOB_STATUS_PENDING
    attempts: int = 0
    created_at: datetime | None = None
    last_attempt_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None


__all__ = [
    "DeliveryJob",
    "JOB_KIND_NOTIFICATION",
    "JOB_STATUSES",
    "JOB_STATUS_PENDING",
    "JOB_STATUS_PROCESSING",
    "JOB_STATUS_COMPLETED",
    "JOB_STATUS_FAILED",
]
