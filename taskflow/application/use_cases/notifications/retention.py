"""Periodic cleanup of old read notifications."""

import logging

from sqlalchemy.orm import Session

from taskflow.infrastructure.repositories import NotificationRepository
from taskflow.utils import naive_utc_ago

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def sweep_read_notifications(
    session: Session, *, older_than_days: int = DEFAULT_RETENTION_DAYS
) -> int:
    """Delete read notifications created more than ``older_than_days`` ago."""

    deleted = NotificationRepository(session).delete_read_before(
        naive_utc_ago(days=older_than_days)
    )
    logger.info("Deleted %s old read notifications", deleted)
    return deleted


__all__ = ["DEFAULT_RETENTION_DAYS", "sweep_read_notifications"]
