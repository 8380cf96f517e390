"""Utility helpers for reusable functionality."""

from .datetime import (
    from_naive_utc,
    naive_utc_ago,
    now_utc,
    now_utc_naive,
    to_naive_utc,
)

__all__ = [
    "from_naive_utc",
    "naive_utc_ago",
    "now_utc",
    "now_utc_naive",
    "to_naive_utc",
]
