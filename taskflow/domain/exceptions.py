"""Exceptions raised by the notification pipeline."""

from __future__ import annotations


class NotFoundError(ValueError):
    """Requested record does not exist or does not belong to the caller."""


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification id is unknown for the requesting user."""

    def __init__(self, notification_id: str) -> None:
        super().__init__("Notification not found")
        self.notification_id = notification_id


class DeliveryJobNotFoundError(NotFoundError):
    """Raised when an operator references a delivery job that does not exist."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Delivery job {job_id} not found")
        self.job_id = job_id


class TransientDeliveryFailure(RuntimeError):
    """Push provider or network error; the push is dropped and logged."""


class PermanentRecipientFailure(RuntimeError):
    """The provider reported the device as permanently unreachable."""

    def __init__(self, token: str, code: str) -> None:
        super().__init__(f"Push token rejected by provider: {code}")
        self.token = token
        self.code = code


class PushConfigurationError(RuntimeError):
    """Push provider credentials are missing or unusable."""


__all__ = [
    "DeliveryJobNotFoundError",
    "NotFoundError",
    "NotificationNotFoundError",
    "PermanentRecipientFailure",
    "PushConfigurationError",
    "TransientDeliveryFailure",
]
