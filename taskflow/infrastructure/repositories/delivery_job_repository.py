"""Persistence layer for the durable delivery queue."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from taskflow.domain.entities import (
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    JOB_STATUS_PROCESSING,
    JOB_STATUSES,
    DeliveryJob,
)
from taskflow.infrastructure.models import DeliveryJobModel
from taskflow.utils import from_naive_utc, now_utc_naive, to_naive_utc

_MAX_ERROR_LENGTH = 2000


class DeliveryJobRepository:
    """Queue operations over the ``delivery_job`` table.

    Every state transition is a conditional ``UPDATE`` guarded by the
    expected current status, so concurrent workers sharing the table can
    never both move the same job forward.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, kind: str, payload: dict[str, Any]) -> str:
        model = DeliveryJobModel(
            id=str(uuid4()),
            kind=kind,
            payload=dict(payload),
            status=JOB_STATUS_PENDING,
            attempts=0,
            created_at=now_utc_naive(),
        )
        self.session.add(model)
        self.session.commit()
        return model.id

    def get(self, job_id: str) -> DeliveryJob | None:
        model = self.session.get(DeliveryJobModel, job_id, populate_existing=True)
        return self._to_entity(model) if model else None

    def list(self, *, status: str | None = None, limit: int = 50) -> Sequence[DeliveryJob]:
        query = self.session.query(DeliveryJobModel)
        if status:
            query = query.filter(DeliveryJobModel.status == status)
        query = query.order_by(
            DeliveryJobModel.created_at.asc(), DeliveryJobModel.id.asc()
        ).limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_by_status(self) -> dict[str, int]:
        counts = {status: 0 for status in JOB_STATUSES}
        rows = (
            self.session.query(DeliveryJobModel.status, func.count(DeliveryJobModel.id))
            .group_by(DeliveryJobModel.status)
            .all()
        )
        for status, count in rows:
            counts[status] = int(count)
        return counts

    def claim_next(self, *, candidates: int = 5) -> DeliveryJob | None:
        """Claim the oldest pending job or return ``None`` when none is claimable.

        A lost race on one candidate moves on to the next oldest one.
        """

        candidate_ids = [
            row.id
            for row in self.session.query(DeliveryJobModel.id)
            .filter(DeliveryJobModel.status == JOB_STATUS_PENDING)
            .order_by(DeliveryJobModel.created_at.asc(), DeliveryJobModel.id.asc())
            .limit(candidates)
            .all()
        ]
        self.session.commit()
        for job_id in candidate_ids:
            if self.try_claim(job_id):
                return self.get(job_id)
        return None

    def try_claim(self, job_id: str) -> bool:
        """Atomically move ``job_id`` from PENDING to PROCESSING."""

        result = self.session.execute(
            update(DeliveryJobModel)
            .where(
                DeliveryJobModel.id == job_id,
                DeliveryJobModel.status == JOB_STATUS_PENDING,
            )
            .values(
                status=JOB_STATUS_PROCESSING,
                attempts=DeliveryJobModel.attempts + 1,
                last_attempt_at=now_utc_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def mark_completed(self, job_id: str) -> bool:
        return self._transition(
            job_id,
            expected=(JOB_STATUS_PROCESSING,),
            status=JOB_STATUS_COMPLETED,
            completed_at=now_utc_naive(),
            error=None,
        )

    def mark_failed(self, job_id: str, error: str) -> bool:
        return self._transition(
            job_id,
            expected=(JOB_STATUS_PROCESSING,),
            status=JOB_STATUS_FAILED,
            error=(error or "unknown error")[:_MAX_ERROR_LENGTH],
        )

    def reclaim_stale(self, *, cutoff: datetime, max_attempts: int) -> tuple[int, int]:
        """Recover jobs left in PROCESSING since before ``cutoff``.

        Jobs that still have attempts left go back to PENDING, the rest are
        marked FAILED. Returns ``(requeued, failed)``.
        """

        naive_cutoff = to_naive_utc(cutoff)
        requeued = self.session.execute(
            update(DeliveryJobModel)
            .where(
                DeliveryJobModel.status == JOB_STATUS_PROCESSING,
                DeliveryJobModel.last_attempt_at < naive_cutoff,
                DeliveryJobModel.attempts < max_attempts,
            )
            .values(status=JOB_STATUS_PENDING, error="lease expired; requeued")
            .execution_options(synchronize_session=False)
        ).rowcount
        failed = self.session.execute(
            update(DeliveryJobModel)
            .where(
                DeliveryJobModel.status == JOB_STATUS_PROCESSING,
                DeliveryJobModel.last_attempt_at < naive_cutoff,
                DeliveryJobModel.attempts >= max_attempts,
            )
            .values(
                status=JOB_STATUS_FAILED,
                error=f"lease expired after {max_attempts} attempts",
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        self.session.commit()
        return int(requeued or 0), int(failed or 0)

    def requeue_failed(self, job_ids: Iterable[str] | None = None) -> int:
        """Move FAILED jobs back to PENDING; ``attempts`` is preserved."""

        statement = update(DeliveryJobModel).where(
            DeliveryJobModel.status == JOB_STATUS_FAILED
        )
        if job_ids is not None:
            ids = [job_id for job_id in job_ids if job_id]
            if not ids:
                return 0
            statement = statement.where(DeliveryJobModel.id.in_(ids))
        result = self.session.execute(
            statement.values(
                status=JOB_STATUS_PENDING, error=None, completed_at=None
            ).execution_options(synchronize_session=False)
        )
        self.session.commit()
        return int(result.rowcount or 0)

    def _transition(
        self, job_id: str, *, expected: tuple[str, ...], **values: Any
    ) -> bool:
        result = self.session.execute(
            update(DeliveryJobModel)
            .where(
                DeliveryJobModel.id == job_id,
                DeliveryJobModel.status.in_(expected),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    @staticmethod
    def _to_entity(model: DeliveryJobModel) -> DeliveryJob:
        return DeliveryJob(
            id=model.id,
            kind=model.kind,
            payload=dict(model.payload or {}),
            status=model.status,
            attempts=int(model.attempts or 0),
            created_at=from_naive_utc(model.created_at),
            last_attempt_at=from_naive_utc(model.last_attempt_at),
            completed_at=from_naive_utc(model.completed_at),
            error=model.error,
        )


__all__ = ["DeliveryJobRepository"]
