"""Render the human readable text of a notification."""

from __future__ import annotations

from typing import Any

from taskflow.domain.entities import Event, EventKind

_DEFAULT_ACTOR = "Someone"
_DEFAULT_TASK = "a task"
_DEFAULT_PROJECT = "a project"


def render_message(event: Event, recipient_id: int | None = None) -> str:
    """Return the notification text ``recipient_id`` receives for ``event``.

    Assignments and project invitations address the recipient as "you" only
    when they are one of the event's targets; everyone else reads a third
    person version.
    """

    payload = event.payload or {}
    actor = _text(payload, "actor_name", _DEFAULT_ACTOR)
    task_title = _text(payload, "task_title", _DEFAULT_TASK)
    project_name = _text(payload, "project_name", _DEFAULT_PROJECT)

    if event.kind is EventKind.COMMENT:
        return f'{actor} commented on task: "{task_title}"'
    if event.kind is EventKind.REPLY:
        return f'{actor} replied to a comment on task: "{task_title}"'
    if event.kind is EventKind.ASSIGNMENT:
        if recipient_id is not None and recipient_id in event.target_user_ids:
            return f'{actor} assigned you to task: "{task_title}"'
        return f'{actor} updated the assignees of task: "{task_title}"'
    if event.kind is EventKind.DUE_DATE:
        if payload.get("overdue"):
            return f'Task "{task_title}" is overdue!'
        return f'Task "{task_title}" is due within 24 hours'
    if event.kind is EventKind.PRIORITY:
        return f'Urgent task: "{task_title}" requires attention'
    if event.kind is EventKind.PROJECT_INVITE:
        if recipient_id is not None and recipient_id in event.target_user_ids:
            return f'{actor} added you to project: "{project_name}"'
        return f'{actor} added new members to project: "{project_name}"'
    if event.kind is EventKind.PROJECT_COMPLETED:
        return f'Project "{project_name}" has been marked as completed'
    return f"{actor} updated {task_title}"


def build_payload(event: Event) -> dict[str, Any]:
    """Return the structured data stored alongside the message."""

    payload: dict[str, Any] = dict(event.payload or {})
    payload.setdefault("actor_id", event.actor_id)
    if event.task_id is not None:
        payload.setdefault("task_id", event.task_id)
    if event.project_id is not None:
        payload.setdefault("project_id", event.project_id)
    if event.workspace_id is not None:
        payload.setdefault("workspace_id", event.workspace_id)
    if event.comment_id is not None:
        payload.setdefault("comment_id", event.comment_id)
    if event.target_user_ids:
        payload.setdefault("target_user_ids", sorted(event.target_user_ids))
    return payload


def _text(payload: dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


__all__ = ["build_payload", "render_message"]
