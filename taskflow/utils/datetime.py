"""Helpers for storing and reading UTC timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def now_utc_naive() -> datetime:
    """Return the current UTC time without ``tzinfo`` for database columns."""

    return to_naive_utc(now_utc())


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC with ``tzinfo`` stripped.

    Naive inputs are assumed to already be expressed in UTC. The database
    columns store naive UTC values so SQLite and PostgreSQL behave the same.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_naive_utc(value: datetime | None) -> datetime | None:
    """Attach the UTC timezone to a value read from the database."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def naive_utc_ago(*, days: float = 0, minutes: float = 0, hours: float = 0) -> datetime:
    """Return the naive UTC instant located the given interval in the past."""

    return now_utc_naive() - timedelta(days=days, hours=hours, minutes=minutes)
