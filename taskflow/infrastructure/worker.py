"""Polling consumer for the durable delivery queue."""

from __future__ import annotations

import logging
import os
import random
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from taskflow.config import Settings, get_settings
from taskflow.domain.entities import DeliveryJob
from taskflow.infrastructure.repositories import DeliveryJobRepository

logger = logging.getLogger(__name__)

JobHandler = Callable[[Session, DeliveryJob], Any]
MaintenanceTask = Callable[[Session], Any]


class Worker:
    """Claim queued jobs one at a time and run the handler registered for their kind.

    Several workers, in threads or separate processes, may share the same
    table: claiming relies on the repository's conditional update. A job
    that raises, or whose kind has no handler, ends up FAILED; the loop
    itself keeps running.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        handlers: Mapping[str, JobHandler],
        *,
        poll_interval: float = 1.0,
        max_poll_interval: float = 15.0,
        maintenance_interval: float = 300.0,
        maintenance_tasks: tuple[MaintenanceTask, ...] = (),
        name: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._handlers = dict(handlers)
        self._poll_interval = poll_interval
        self._max_poll_interval = max(poll_interval, max_poll_interval)
        self._maintenance_interval = maintenance_interval
        self._maintenance_tasks = maintenance_tasks
        self._next_maintenance = 0.0
        self.name = name or f"worker-{os.getpid()}-{threading.get_ident()}"

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], Session],
        handlers: Mapping[str, JobHandler],
        *,
        maintenance_tasks: tuple[MaintenanceTask, ...] = (),
        settings: Settings | None = None,
        name: str | None = None,
    ) -> "Worker":
        settings = settings or get_settings()
        return cls(
            session_factory,
            handlers,
            poll_interval=settings.worker_poll_interval,
            max_poll_interval=settings.worker_max_poll_interval,
            maintenance_interval=settings.worker_maintenance_interval,
            maintenance_tasks=maintenance_tasks,
            name=name,
        )

    def run_once(self) -> bool:
        """Process at most one job. Returns ``True`` when a job was claimed."""

        session = self._session_factory()
        try:
            repository = DeliveryJobRepository(session)
            job = repository.claim_next()
            if job is None:
                return False
            self._execute(session, repository, job)
            return True
        finally:
            session.close()

    def run_forever(self, stop_event: threading.Event) -> None:
        """Loop until ``stop_event`` is set, backing off while the queue is idle."""

        logger.info("%s started and listening for jobs", self.name)
        idle_delay = self._poll_interval
        while not stop_event.is_set():
            self._maybe_run_maintenance()
            try:
                processed = self.run_once()
            except Exception:
                logger.exception("%s could not poll the queue", self.name)
                processed = False

            if processed:
                idle_delay = self._poll_interval
                continue

            stop_event.wait(self._jittered(idle_delay))
            idle_delay = min(idle_delay * 2, self._max_poll_interval)
        logger.info("%s stopped", self.name)

    def run_maintenance(self) -> None:
        """Run every maintenance task once, each in its own session."""

        for task in self._maintenance_tasks:
            session = self._session_factory()
            try:
                task(session)
            except Exception:
                session.rollback()
                logger.exception("%s maintenance task %r failed", self.name, task)
            finally:
                session.close()

    def _maybe_run_maintenance(self) -> None:
        if not self._maintenance_tasks:
            return
        now = time.monotonic()
        if now < self._next_maintenance:
            return
        self._next_maintenance = now + self._maintenance_interval
        self.run_maintenance()

    def _execute(
        self, session: Session, repository: DeliveryJobRepository, job: DeliveryJob
    ) -> None:
        handler = self._handlers.get(job.kind)
        if handler is None:
            self._record_failure(
                session, repository, job, f"no handler registered for kind '{job.kind}'"
            )
            return

        try:
            handler(session, job)
        except Exception as exc:
            session.rollback()
            logger.exception(
                "%s failed to process %s job %s (attempt %s)",
                self.name,
                job.kind,
                job.id,
                job.attempts,
            )
            self._record_failure(session, repository, job, f"{type(exc).__name__}: {exc}")
            return

        try:
            transitioned = repository.mark_completed(job.id)
        except Exception:
            session.rollback()
            logger.exception("%s could not mark job %s as completed", self.name, job.id)
            return
        if not transitioned:
            self._log_lost_transition(job, "COMPLETED")
            return
        logger.info("%s completed %s job %s", self.name, job.kind, job.id)

    def _record_failure(
        self,
        session: Session,
        repository: DeliveryJobRepository,
        job: DeliveryJob,
        error: str,
    ) -> None:
        try:
            transitioned = repository.mark_failed(job.id, error)
        except Exception:
            session.rollback()
            logger.exception("%s could not mark job %s as failed", self.name, job.id)
            return
        if not transitioned:
            self._log_lost_transition(job, "FAILED")
            return
        logger.warning("%s marked job %s as FAILED: %s", self.name, job.id, error)

    def _log_lost_transition(self, job: DeliveryJob, outcome: str) -> None:
        # The lease expired and the job was reclaimed while this worker held it.
        logger.warning(
            "%s could not mark job %s as %s: it is no longer PROCESSING",
            self.name,
            job.id,
            outcome,
        )

    @staticmethod
    def _jittered(delay: float) -> float:
        return delay * random.uniform(0.5, 1.0)


def start_worker_thread(worker: Worker, stop_event: threading.Event) -> threading.Thread:
    """Run ``worker`` in a daemon thread until ``stop_event`` is set."""

    thread = threading.Thread(
        target=worker.run_forever, args=(stop_event,), name=worker.name, daemon=True
    )
    thread.start()
    return thread


__all__ = ["JobHandler", "MaintenanceTask", "Worker", "start_worker_thread"]
