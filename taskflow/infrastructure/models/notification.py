"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.sql import expression

from taskflow.infrastructure.database import Base
from taskflow.utils import now_utc_naive


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_recipient_read", "recipient_id", "is_read"),
    )

    id = Column(String(36), primary_key=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(40), nullable=False)
    related_task_id = Column(Integer, nullable=True, index=True)
    related_project_id = Column(Integer, nullable=True)
    job_id = Column(String(36), nullable=True, unique=True)
    message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    is_read = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )
    created_at = Column(DateTime(), nullable=False, default=now_utc_naive, index=True)


__all__ = ["NotificationModel"]
