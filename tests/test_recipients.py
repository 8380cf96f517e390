"""Tests for the recipient resolution rules."""

from __future__ import annotations

import pytest

from taskflow.application.use_cases.notifications import (
    RecipientResolver,
    resolve_recipients,
)
from taskflow.domain.entities import (
    CommentNode,
    Event,
    EventKind,
    InMemoryDomainGraph,
    ProjectNode,
    TaskNode,
)

A, B, C, D, E, F = 1, 2, 3, 4, 5, 6

TASK_ID = 100
STANDALONE_TASK_ID = 101
PROJECT_ID = 200
WORKSPACE_ID = 300
COMMENT_ID = 400


@pytest.fixture()
def graph() -> InMemoryDomainGraph:
    return InMemoryDomainGraph.build(
        tasks=[
            TaskNode(
                id=TASK_ID,
                creator_id=A,
                project_id=PROJECT_ID,
                assignee_ids=frozenset({B, C}),
            ),
            TaskNode(
                id=STANDALONE_TASK_ID,
                creator_id=A,
                project_id=None,
                assignee_ids=frozenset({C}),
            ),
        ],
        projects=[
            ProjectNode(
                id=PROJECT_ID,
                owner_id=D,
                workspace_id=WORKSPACE_ID,
                member_ids=frozenset({B, D}),
            )
        ],
        comments=[CommentNode(id=COMMENT_ID, author_id=F)],
        workspace_owners={WORKSPACE_ID: {E}},
    )


def test_comment_scenario_reaches_creator_assignees_members_and_owners(graph):
    event = Event(kind=EventKind.COMMENT, actor_id=B, task_id=TASK_ID)

    assert resolve_recipients(event, graph) == {A, C, D, E}


@pytest.mark.parametrize("kind", list(EventKind))
@pytest.mark.parametrize("actor", [A, B, C, D, E, F])
def test_actor_is_never_notified(graph, kind, actor):
    event = Event(
        kind=kind,
        actor_id=actor,
        task_id=TASK_ID,
        comment_id=COMMENT_ID,
        reply_to_user_id=actor,
    )

    assert actor not in resolve_recipients(event, graph)


@pytest.mark.parametrize("kind", list(EventKind))
def test_workspace_owner_included_without_project_membership(graph, kind):
    event = Event(kind=kind, actor_id=A, task_id=TASK_ID)

    recipients = resolve_recipients(event, graph)

    assert E in recipients
    assert E not in graph.get_project(PROJECT_ID).member_ids


@pytest.mark.parametrize("kind", list(EventKind))
def test_standalone_task_only_reaches_creator_and_assignees(graph, kind):
    event = Event(kind=kind, actor_id=B, task_id=STANDALONE_TASK_ID)

    assert resolve_recipients(event, graph) <= {A, C}


def test_reply_adds_parent_author_and_tagged_user(graph):
    event = Event(
        kind=EventKind.REPLY,
        actor_id=C,
        task_id=STANDALONE_TASK_ID,
        comment_id=COMMENT_ID,
        reply_to_user_id=B,
    )

    assert resolve_recipients(event, graph) == {A, B, F}


def test_reply_targets_ignored_for_plain_comments(graph):
    event = Event(
        kind=EventKind.COMMENT,
        actor_id=C,
        task_id=STANDALONE_TASK_ID,
        comment_id=COMMENT_ID,
        reply_to_user_id=B,
    )

    assert resolve_recipients(event, graph) == {A}


def test_project_event_reaches_owner_members_and_workspace_owners(graph):
    event = Event(kind=EventKind.PROJECT_COMPLETED, actor_id=E, project_id=PROJECT_ID)

    assert resolve_recipients(event, graph) == {B, D}


def test_no_eligible_recipients_returns_empty_set():
    lonely = InMemoryDomainGraph.build(
        tasks=[TaskNode(id=1, creator_id=A, assignee_ids=frozenset({A}))]
    )
    event = Event(kind=EventKind.ASSIGNMENT, actor_id=A, task_id=1)

    assert resolve_recipients(event, lonely) == set()


def test_unknown_entities_contribute_nobody(graph):
    event = Event(kind=EventKind.COMMENT, actor_id=A, task_id=999, project_id=998)

    assert resolve_recipients(event, graph) == set()


def test_resolution_is_deterministic_and_read_only(graph):
    resolver = RecipientResolver(graph)
    event = Event(kind=EventKind.COMMENT, actor_id=B, task_id=TASK_ID)

    first = resolver.resolve(event)
    second = resolver.resolve(event)

    assert first == second
    assert graph.get_task(TASK_ID).assignee_ids == frozenset({B, C})


@pytest.mark.parametrize("kind", [EventKind.ASSIGNMENT, EventKind.PROJECT_INVITE])
def test_targets_join_assignment_and_invite_audiences(graph, kind):
    event = Event(
        kind=kind,
        actor_id=D,
        project_id=PROJECT_ID,
        target_user_ids=frozenset({F, D}),
    )

    assert resolve_recipients(event, graph) == {B, E, F}


def test_targets_ignored_for_other_kinds(graph):
    event = Event(
        kind=EventKind.COMMENT,
        actor_id=C,
        task_id=STANDALONE_TASK_ID,
        target_user_ids=frozenset({F}),
    )

    assert resolve_recipients(event, graph) == {A}
