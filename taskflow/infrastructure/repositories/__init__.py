"""Repository implementations for infrastructure layer."""

from .delivery_job_repository import DeliveryJobRepository
from .notification_repository import NotificationRepository
from .push_token_repository import PushTokenRepository

__all__ = [
    "DeliveryJobRepository",
    "NotificationRepository",
    "PushTokenRepository",
]
