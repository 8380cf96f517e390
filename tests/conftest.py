"""Shared fixtures for the notification pipeline tests."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(tempfile.gettempdir()) / f"taskflow-tests-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PUSH_ENABLED"] = "false"
os.environ["WORKER_EMBEDDED"] = "false"

from taskflow.infrastructure import database  # noqa: E402
from taskflow.infrastructure.security import create_access_token  # noqa: E402


class RecordingPublisher:
    """Stand-in for the realtime publisher that remembers every dispatch."""

    def __init__(self) -> None:
        self.events: list[tuple[int, str, Any]] = []
        self.notifications: list[Any] = []

    def dispatch(self, user_id: int, *, event_type: str, payload: Any) -> None:
        self.events.append((user_id, event_type, payload))

    def dispatch_notification(self, notification: Any) -> None:
        self.notifications.append(notification)


class ExplodingPublisher(RecordingPublisher):
    """Publisher whose every dispatch fails."""

    def dispatch(self, user_id: int, *, event_type: str, payload: Any) -> None:
        raise RuntimeError("socket layer down")

    def dispatch_notification(self, notification: Any) -> None:
        raise RuntimeError("socket layer down")


@pytest.fixture(autouse=True)
def reset_database():
    """Give every test empty tables."""

    from taskflow.infrastructure import models  # noqa: F401

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def session_factory():
    return database.SessionLocal


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def exploding_publisher() -> ExplodingPublisher:
    return ExplodingPublisher()


def bearer(user_id: int) -> dict[str, str]:
    """Return an Authorization header for ``user_id``."""

    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def auth_headers():
    return bearer


def pytest_sessionfinish(session, exitstatus):
    database.engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
