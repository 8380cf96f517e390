"""Domain events emitted by the task tracker that may require notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Kinds of domain occurrences that produce notifications."""

    COMMENT = "COMMENT"
    REPLY = "REPLY"
    ASSIGNMENT = "ASSIGNMENT"
    DUE_DATE = "DUE_DATE"
    PRIORITY = "PRIORITY"
    PROJECT_INVITE = "PROJECT_INVITE"
    PROJECT_COMPLETED = "PROJECT_COMPLETED"


@dataclass(frozen=True)
class Event:
    """Occurrence reported by the CRUD layer after its write committed.

    ``payload`` carries rendering context such as ``actor_name``,
    ``task_title`` or ``project_name``. For replies ``comment_id`` points to
    the comment being answered and ``reply_to_user_id`` to the user tagged in
    the reply, when any. ``target_user_ids`` names the users an assignment
    or project invitation is about; only they are addressed as "you".
    """

    kind: EventKind
    actor_id: int
    task_id: int | None = None
    project_id: int | None = None
    workspace_id: int | None = None
    comment_id: int | None = None
    reply_to_user_id: int | None = None
    target_user_ids: frozenset[int] = frozenset()
    payload: dict[str, Any] = field(default_factory=dict)


__all__ = ["Event", "EventKind"]
