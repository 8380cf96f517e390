"""Delivery worker entry point.

Run ``python worker.py`` to consume the delivery queue in a dedicated
process, or enable ``WORKER_EMBEDDED`` to let the API process start one.
"""

from __future__ import annotations

import logging
import signal
import threading
from functools import partial

from taskflow.application.use_cases.delivery_jobs import reclaim_stale_jobs
from taskflow.application.use_cases.notifications import (
    NotificationDeliveryHandler,
    sweep_read_notifications,
)
from taskflow.config import Settings, get_settings
from taskflow.domain.entities import JOB_KIND_NOTIFICATION
from taskflow.infrastructure.database import SessionLocal, initialize_database
from taskflow.infrastructure.notifications import (
    PushDispatcher,
    RealtimeEventPublisher,
    realtime_event_publisher,
)
from taskflow.infrastructure.worker import Worker

logger = logging.getLogger(__name__)


def create_worker(
    settings: Settings | None = None,
    *,
    publisher: RealtimeEventPublisher | None = None,
    push: PushDispatcher | None = None,
    name: str | None = None,
) -> Worker:
    """Build a worker wired with the notification handler and maintenance tasks."""

    settings = settings or get_settings()
    if push is None:
        push = PushDispatcher.from_settings(SessionLocal, settings)
    handler = NotificationDeliveryHandler(
        push=push, publisher=publisher or realtime_event_publisher
    )
    maintenance = (
        partial(
            reclaim_stale_jobs,
            lease_timeout_minutes=settings.worker_lease_timeout_minutes,
            max_attempts=settings.worker_max_attempts,
        ),
        partial(
            sweep_read_notifications,
            older_than_days=settings.notification_retention_days,
        ),
    )
    return Worker.from_settings(
        SessionLocal,
        {JOB_KIND_NOTIFICATION: handler},
        maintenance_tasks=maintenance,
        settings=settings,
        name=name,
    )


def main() -> None:
    """Run a worker in the foreground until interrupted."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    initialize_database()

    stop_event = threading.Event()

    def _request_stop(signum: int, _frame: object) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    create_worker(settings).run_forever(stop_event)


if __name__ == "__main__":
    main()
