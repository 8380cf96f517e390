"""Operator use cases for inspecting and recovering delivery jobs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from taskflow.domain.entities import JOB_STATUSES, DeliveryJob
from taskflow.domain.exceptions import DeliveryJobNotFoundError
from taskflow.infrastructure.repositories import DeliveryJobRepository
from taskflow.utils import naive_utc_ago

logger = logging.getLogger(__name__)


def list_delivery_jobs(
    session: Session, *, status: str | None = None, limit: int = 50
) -> list[DeliveryJob]:
    """Return jobs oldest first, optionally filtered by ``status``."""

    if status is not None and status not in JOB_STATUSES:
        raise ValueError(f"Unknown job status: {status}")
    return list(DeliveryJobRepository(session).list(status=status, limit=limit))


def get_delivery_job(session: Session, job_id: str) -> DeliveryJob:
    job = DeliveryJobRepository(session).get(job_id)
    if job is None:
        raise DeliveryJobNotFoundError(job_id)
    return job


def queue_stats(session: Session) -> dict[str, int]:
    return DeliveryJobRepository(session).count_by_status()


def reclaim_stale_jobs(
    session: Session, *, lease_timeout_minutes: int, max_attempts: int
) -> tuple[int, int]:
    """Recover jobs whose worker stopped before recording an outcome."""

    requeued, failed = DeliveryJobRepository(session).reclaim_stale(
        cutoff=naive_utc_ago(minutes=lease_timeout_minutes),
        max_attempts=max_attempts,
    )
    if requeued or failed:
        logger.warning(
            "Reclaimed stale jobs: %s requeued, %s marked as failed", requeued, failed
        )
    return requeued, failed


def requeue_failed_jobs(
    session: Session, job_ids: Sequence[str] | None = None
) -> int:
    """Put FAILED jobs back in the queue for another attempt."""

    requeued = DeliveryJobRepository(session).requeue_failed(job_ids)
    logger.info("Requeued %s failed delivery jobs", requeued)
    return requeued


__all__ = [
    "get_delivery_job",
    "list_delivery_jobs",
    "queue_stats",
    "reclaim_stale_jobs",
    "requeue_failed_jobs",
]
