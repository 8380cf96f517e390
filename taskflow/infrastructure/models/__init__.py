"""ORM models used by the application infrastructure."""

from .delivery_job import DeliveryJobModel
from .notification import NotificationModel
from .user_profile import UserProfileModel

__all__ = [
    "DeliveryJobModel",
    "NotificationModel",
    "UserProfileModel",
]
