"""Read-only view of the task tracker's membership graph."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class TaskNode:
    """Task attributes relevant to recipient resolution."""

    id: int
    creator_id: int | None
    project_id: int | None = None
    assignee_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class ProjectNode:
    """Project attributes relevant to recipient resolution."""

    id: int
    owner_id: int | None
    workspace_id: int | None = None
    member_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class CommentNode:
    """Comment attributes relevant to reply notifications."""

    id: int
    author_id: int


class DomainGraph(Protocol):
    """Lookup port implemented by the owner of the business entities."""

    def get_task(self, task_id: int) -> TaskNode | None:
        ...

    def get_project(self, project_id: int) -> ProjectNode | None:
        ...

    def get_comment(self, comment_id: int) -> CommentNode | None:
        ...

    def list_workspace_owner_ids(self, workspace_id: int) -> frozenset[int]:
        ...


@dataclass
class InMemoryDomainGraph:
    """:class:`DomainGraph` backed by plain dictionaries."""

    tasks: dict[int, TaskNode] = field(default_factory=dict)
    projects: dict[int, ProjectNode] = field(default_factory=dict)
    comments: dict[int, CommentNode] = field(default_factory=dict)
    workspace_owners: dict[int, frozenset[int]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        tasks: Iterable[TaskNode] = (),
        projects: Iterable[ProjectNode] = (),
        comments: Iterable[CommentNode] = (),
        workspace_owners: Mapping[int, Iterable[int]] | None = None,
    ) -> "InMemoryDomainGraph":
        return cls(
            tasks={task.id: task for task in tasks},
            projects={project.id: project for project in projects},
            comments={comment.id: comment for comment in comments},
            workspace_owners={
                workspace_id: frozenset(owner_ids)
                for workspace_id, owner_ids in (workspace_owners or {}).items()
            },
        )

    def get_task(self, task_id: int) -> TaskNode | None:
        return self.tasks.get(task_id)

    def get_project(self, project_id: int) -> ProjectNode | None:
        return self.projects.get(project_id)

    def get_comment(self, comment_id: int) -> CommentNode | None:
        return self.comments.get(comment_id)

    def list_workspace_owner_ids(self, workspace_id: int) -> frozenset[int]:
        return self.workspace_owners.get(workspace_id, frozenset())


__all__ = [
    "CommentNode",
    "DomainGraph",
    "InMemoryDomainGraph",
    "ProjectNode",
    "TaskNode",
]
