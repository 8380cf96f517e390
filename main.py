import asyncio
import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI

from taskflow.config import get_settings
from taskflow.infrastructure.database import engine, initialize_database
from taskflow.infrastructure.notifications import realtime_event_publisher
from taskflow.infrastructure.worker import start_worker_thread
from taskflow.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and realtime bridge, optionally start a worker."""

    settings = get_settings()
    initialize_database()
    realtime_event_publisher.bind_loop(asyncio.get_running_loop())

    stop_event = threading.Event()
    worker_thread = None
    if settings.worker_embedded:
        from worker import create_worker

        worker_thread = start_worker_thread(create_worker(settings), stop_event)
        logger.info("Embedded delivery worker started")

    yield

    stop_event.set()
    if worker_thread is not None:
        worker_thread.join(timeout=settings.worker_max_poll_interval + 5)
    realtime_event_publisher.bind_loop(None)
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Taskflow Notifications", lifespan=lifespan)
    register_routes(app)
    return app


app = create_app()
