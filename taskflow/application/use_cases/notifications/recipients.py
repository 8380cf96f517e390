"""Decide which users must hear about a domain event."""

from __future__ import annotations

from taskflow.domain.entities import DomainGraph, Event, EventKind, ProjectNode, TaskNode

_TARGETED_KINDS = frozenset({EventKind.ASSIGNMENT, EventKind.PROJECT_INVITE})


def resolve_recipients(event: Event, graph: DomainGraph) -> set[int]:
    """Return the ids of the users to notify about ``event``.

    The result is the union of the subject's creator or owner, the task
    assignees, the project members and the owners of the project's
    workspace. Replies add the replied-to author and the tagged user;
    assignments and invitations add their targets. The actor is never part
    of the result. Referenced entities missing from ``graph`` contribute
    nobody.
    """

    recipients: set[int] = set()

    task = graph.get_task(event.task_id) if event.task_id is not None else None
    project_id = event.project_id
    if task is not None:
        _add(recipients, task.creator_id)
        recipients.update(task.assignee_ids)
        if task.project_id is not None:
            project_id = task.project_id

    project = graph.get_project(project_id) if project_id is not None else None
    if project is not None:
        if task is None:
            _add(recipients, project.owner_id)
        recipients.update(_project_audience(project, graph))

    if event.kind in _TARGETED_KINDS:
        recipients.update(event.target_user_ids)

    if event.kind is EventKind.REPLY:
        if event.comment_id is not None:
            comment = graph.get_comment(event.comment_id)
            if comment is not None:
                _add(recipients, comment.author_id)
        _add(recipients, event.reply_to_user_id)

    recipients.discard(event.actor_id)
    return recipients


def _project_audience(project: ProjectNode, graph: DomainGraph) -> set[int]:
    audience = set(project.member_ids)
    if project.workspace_id is not None:
        audience.update(graph.list_workspace_owner_ids(project.workspace_id))
    return audience


def _add(recipients: set[int], user_id: int | None) -> None:
    if user_id is not None:
        recipients.add(user_id)


class RecipientResolver:
    """Bind :func:`resolve_recipients` to one domain graph."""

    def __init__(self, graph: DomainGraph) -> None:
        self._graph = graph

    def resolve(self, event: Event) -> set[int]:
        return resolve_recipients(event, self._graph)

    def task(self, task_id: int | None) -> TaskNode | None:
        return self._graph.get_task(task_id) if task_id is not None else None


__all__ = ["RecipientResolver", "resolve_recipients"]
