from .notification import (
    MarkAllReadResponse,
    NotificationPageRead,
    NotificationRead,
    UnreadCountRead,
)

__all__ = [
    "MarkAllReadResponse",
    "NotificationPageRead",
    "NotificationRead",
    "UnreadCountRead",
]
