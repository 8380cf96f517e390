"""SQLAlchemy model for the durable delivery queue."""

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text

from taskflow.domain.entities import JOB_STATUS_PENDING
from taskflow.infrastructure.database import Base
from taskflow.utils import now_utc_naive


class DeliveryJobModel(Base):
    """Database representation of a queued delivery job."""

    __tablename__ = "delivery_job"
    __table_args__ = (
        Index("ix_delivery_job_status_created", "status", "created_at"),
    )

    id = Column(String(36), primary_key=True)
    kind = Column(String(50), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=JOB_STATUS_PENDING)
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_utc_naive)
    last_attempt_at = Column(DateTime(), nullable=True)
    completed_at = Column(DateTime(), nullable=True)


__all__ = ["DeliveryJobModel"]
