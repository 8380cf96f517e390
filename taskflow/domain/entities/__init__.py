"""Domain entities exposed by the application."""

from .delivery_job import (
    JOB_KIND_NOTIFICATION,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    JOB_STATUS_PROCESSING,
    JOB_STATUSES,
    DeliveryJob,
)
from .event import Event, EventKind
from .graph import (
    CommentNode,
    DomainGraph,
    InMemoryDomainGraph,
    ProjectNode,
    TaskNode,
)
from .notification import Notification, NotificationPage

__all__ = [
    "CommentNode",
    "DeliveryJob",
    "DomainGraph",
    "Event",
    "EventKind",
    "InMemoryDomainGraph",
    "JOB_KIND_NOTIFICATION",
    "JOB_STATUSES",
    "JOB_STATUS_PENDING",
    "JOB_STATUS_PROCESSING",
    "JOB_STATUS_COMPLETED",
    "JOB_STATUS_FAILED",
    "Notification",
    "NotificationPage",
    "ProjectNode",
    "TaskNode",
]
