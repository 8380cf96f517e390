"""Database configuration and session management."""

from __future__ import annotations

from collections.abc import Generator

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from taskflow.config import get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


logger = logging.getLogger(__name__)


def _build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for ``database_url``.

    SQLite connections are shared between the API threadpool and the worker
    threads, so the same-thread check is disabled for that backend.
    """

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(database_url, pool_pre_ping=True)


settings = get_settings()
engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def initialize_database() -> None:
    """Ensure all ORM models have corresponding database tables."""

    from taskflow.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.debug("Database schema ensured for %s", engine.url.render_as_string(hide_password=True))


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and close it afterwards."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = ["Base", "SessionLocal", "engine", "get_db", "initialize_database"]
