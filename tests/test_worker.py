"""End-to-end tests for publishing events and draining them with the worker."""

from __future__ import annotations

import logging
import threading

import pytest

from taskflow.application.use_cases.notifications import (
    NotificationDeliveryHandler,
    list_notifications,
    mark_read,
    publish_event,
)
from taskflow.domain.entities import (
    JOB_KIND_NOTIFICATION,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    Event,
    EventKind,
    InMemoryDomainGraph,
    ProjectNode,
    TaskNode,
)
from taskflow.infrastructure.models import DeliveryJobModel
from taskflow.infrastructure.repositories import (
    DeliveryJobRepository,
    NotificationRepository,
)
from taskflow.infrastructure.worker import Worker

OWNER, ASSIGNEE, COMMENTER = 1, 2, 3


class FailingPush:
    def __init__(self) -> None:
        self.calls = 0

    def send(self, user_id, title, body, data=None):
        self.calls += 1
        raise RuntimeError("push provider unreachable")


class RecordingPush:
    def __init__(self) -> None:
        self.sent: list[tuple] = []

    def send(self, user_id, title, body, data=None):
        self.sent.append((user_id, title, body, data))


@pytest.fixture()
def graph() -> InMemoryDomainGraph:
    return InMemoryDomainGraph.build(
        tasks=[
            TaskNode(
                id=10,
                creator_id=OWNER,
                project_id=20,
                assignee_ids=frozenset({ASSIGNEE}),
            )
        ],
        projects=[
            ProjectNode(
                id=20,
                owner_id=OWNER,
                member_ids=frozenset({OWNER, ASSIGNEE, COMMENTER}),
            )
        ],
    )


def _worker(session_factory, handler) -> Worker:
    return Worker(
        session_factory,
        {JOB_KIND_NOTIFICATION: handler},
        poll_interval=0.01,
        max_poll_interval=0.02,
        name="test-worker",
    )


def _drain(worker: Worker) -> int:
    processed = 0
    while worker.run_once():
        processed += 1
    return processed


def test_published_event_reaches_every_recipient_feed(
    session, session_factory, publisher, graph
):
    event = Event(
        kind=EventKind.COMMENT,
        actor_id=COMMENTER,
        task_id=10,
        comment_id=5,
        payload={"actor_name": "Carla", "task_title": "Write docs"},
    )
    push = RecordingPush()

    job_ids = publish_event(session, event, graph)
    processed = _drain(_worker(session_factory, NotificationDeliveryHandler(push, publisher)))

    assert len(job_ids) == 2
    assert processed == 2
    for recipient in (OWNER, ASSIGNEE):
        page = list_notifications(session, recipient)
        assert page.total == 1
        notification = page.items[0]
        assert notification.message == 'Carla commented on task: "Write docs"'
        assert notification.kind == "COMMENT"
        assert notification.related_task_id == 10
        assert notification.related_project_id == 20
        assert notification.payload["comment_id"] == 5
        assert notification.is_read is False
    assert list_notifications(session, COMMENTER).total == 0

    repository = DeliveryJobRepository(session)
    assert {repository.get(job_id).status for job_id in job_ids} == {JOB_STATUS_COMPLETED}
    assert sorted(user for user, *_ in push.sent) == [OWNER, ASSIGNEE]
    assert {title for _, title, _, _ in push.sent} == {"💬 New Comment"}
    assert sorted(n.recipient_id for n in publisher.notifications) == [OWNER, ASSIGNEE]


def test_handler_exception_marks_job_failed_and_worker_continues(
    session, session_factory
):
    calls: list[str] = []

    def _explode(job_session, job):
        calls.append(job.id)
        raise RuntimeError("template missing")

    repository = DeliveryJobRepository(session)
    first = repository.enqueue(JOB_KIND_NOTIFICATION, {})
    second = repository.enqueue(JOB_KIND_NOTIFICATION, {})

    processed = _drain(_worker(session_factory, _explode))

    assert processed == 2
    assert calls == [first, second]
    for job_id in (first, second):
        job = repository.get(job_id)
        assert job.status == JOB_STATUS_FAILED
        assert job.error == "RuntimeError: template missing"
        assert job.attempts == 1


def test_unknown_kind_is_marked_failed(session, session_factory, publisher):
    job_id = DeliveryJobRepository(session).enqueue("digest", {"recipient_id": 1})

    assert _worker(session_factory, NotificationDeliveryHandler(None, publisher)).run_once()

    job = DeliveryJobRepository(session).get(job_id)
    assert job.status == JOB_STATUS_FAILED
    assert job.error == "no handler registered for kind 'digest'"


def test_malformed_request_is_marked_failed(session, session_factory, publisher):
    job_id = DeliveryJobRepository(session).enqueue(JOB_KIND_NOTIFICATION, {"kind": "COMMENT"})

    _worker(session_factory, NotificationDeliveryHandler(None, publisher)).run_once()

    job = DeliveryJobRepository(session).get(job_id)
    assert job.status == JOB_STATUS_FAILED
    assert job.error.startswith("ValueError: Malformed notification request")
    assert list_notifications(session, 1).total == 0


def test_push_failure_does_not_fail_the_job(session, session_factory, publisher, graph):
    push = FailingPush()
    event = Event(kind=EventKind.ASSIGNMENT, actor_id=OWNER, task_id=10)

    job_ids = publish_event(session, event, graph)
    _drain(_worker(session_factory, NotificationDeliveryHandler(push, publisher)))

    assert push.calls == 2
    repository = DeliveryJobRepository(session)
    assert {repository.get(job_id).status for job_id in job_ids} == {JOB_STATUS_COMPLETED}
    assert list_notifications(session, ASSIGNEE).total == 1


def test_realtime_failure_does_not_fail_the_job(
    session, session_factory, exploding_publisher, graph
):
    event = Event(kind=EventKind.ASSIGNMENT, actor_id=OWNER, task_id=10)

    job_ids = publish_event(session, event, graph)
    _drain(_worker(session_factory, NotificationDeliveryHandler(None, exploding_publisher)))

    repository = DeliveryJobRepository(session)
    assert {repository.get(job_id).status for job_id in job_ids} == {JOB_STATUS_COMPLETED}


def test_redelivered_job_does_not_duplicate_notification(session, publisher):
    repository = DeliveryJobRepository(session)
    job_id = repository.enqueue(
        JOB_KIND_NOTIFICATION,
        {"recipient_id": 4, "kind": "COMMENT", "message": "hello", "payload": {}},
    )
    job = repository.get(job_id)
    handler = NotificationDeliveryHandler(None, publisher)

    first = handler(session, job)
    second = handler(session, job)

    assert first.id == second.id
    assert NotificationRepository(session).get_by_job(job_id).id == first.id
    assert list_notifications(session, 4).total == 1
    assert len(publisher.notifications) == 2


def test_reminders_are_deduplicated_while_unread(session, session_factory, publisher, graph):
    event = Event(
        kind=EventKind.DUE_DATE,
        actor_id=0,
        task_id=10,
        payload={"task_title": "Write docs"},
    )
    worker = _worker(session_factory, NotificationDeliveryHandler(None, publisher))

    assert len(publish_event(session, event, graph)) == 3
    _drain(worker)
    assert publish_event(session, event, graph) == []

    reminder = list_notifications(session, ASSIGNEE).items[0]
    assert reminder.message == 'Task "Write docs" is due within 24 hours'
    mark_read(session, reminder.id, ASSIGNEE, publisher=publisher)

    assert len(publish_event(session, event, graph)) == 1


def test_non_reminder_kinds_are_never_deduplicated(session, session_factory, publisher, graph):
    event = Event(kind=EventKind.COMMENT, actor_id=COMMENTER, task_id=10)
    worker = _worker(session_factory, NotificationDeliveryHandler(None, publisher))

    publish_event(session, event, graph)
    _drain(worker)

    assert len(publish_event(session, event, graph)) == 2


def test_run_forever_processes_queue_then_stops(session, session_factory, publisher):
    repository = DeliveryJobRepository(session)
    job_id = repository.enqueue(
        JOB_KIND_NOTIFICATION,
        {"recipient_id": 8, "kind": "COMMENT", "message": "queued before start"},
    )
    maintenance_runs: list[int] = []
    worker = Worker(
        session_factory,
        {JOB_KIND_NOTIFICATION: NotificationDeliveryHandler(None, publisher)},
        poll_interval=0.01,
        max_poll_interval=0.05,
        maintenance_tasks=(lambda _session: maintenance_runs.append(1),),
    )
    stop_event = threading.Event()
    thread = threading.Thread(target=worker.run_forever, args=(stop_event,), daemon=True)

    thread.start()
    for _ in range(200):
        if repository.get(job_id).status == JOB_STATUS_COMPLETED:
            break
        stop_event.wait(0.02)
    stop_event.set()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert repository.get(job_id).status == JOB_STATUS_COMPLETED
    assert maintenance_runs == [1]


def test_assignment_addresses_only_the_assignee_as_you(
    session, session_factory, publisher, graph
):
    event = Event(
        kind=EventKind.ASSIGNMENT,
        actor_id=OWNER,
        task_id=10,
        target_user_ids=frozenset({ASSIGNEE}),
        payload={"actor_name": "Ann", "task_title": "Ship"},
    )

    publish_event(session, event, graph)
    _drain(_worker(session_factory, NotificationDeliveryHandler(None, publisher)))

    assignee_feed = list_notifications(session, ASSIGNEE).items
    member_feed = list_notifications(session, COMMENTER).items
    assert [item.message for item in assignee_feed] == ['Ann assigned you to task: "Ship"']
    assert [item.message for item in member_feed] == [
        'Ann updated the assignees of task: "Ship"'
    ]
    assert assignee_feed[0].payload["target_user_ids"] == [ASSIGNEE]


def test_project_invite_reaches_invitee_missing_from_graph(
    session, session_factory, publisher, graph
):
    invitee = 9
    event = Event(
        kind=EventKind.PROJECT_INVITE,
        actor_id=OWNER,
        project_id=20,
        target_user_ids=frozenset({invitee}),
        payload={"actor_name": "Ann", "project_name": "Launch"},
    )

    publish_event(session, event, graph)
    _drain(_worker(session_factory, NotificationDeliveryHandler(None, publisher)))

    assert [item.message for item in list_notifications(session, invitee).items] == [
        'Ann added you to project: "Launch"'
    ]
    assert [item.message for item in list_notifications(session, ASSIGNEE).items] == [
        'Ann added new members to project: "Launch"'
    ]


def test_push_data_keeps_reserved_keys_over_payload(session, publisher):
    repository = DeliveryJobRepository(session)
    job_id = repository.enqueue(
        JOB_KIND_NOTIFICATION,
        {
            "recipient_id": 4,
            "kind": "COMMENT",
            "message": "hello",
            "related_task_id": 10,
            "payload": {"type": "spoofed", "notification_id": "other", "task_title": "Ship"},
        },
    )
    push = RecordingPush()

    notification = NotificationDeliveryHandler(push, publisher)(session, repository.get(job_id))

    (_, _, _, data), = push.sent
    assert data["type"] == "COMMENT"
    assert data["notification_id"] == notification.id
    assert data["task_id"] == 10
    assert data["task_title"] == "Ship"


def test_outcome_lost_to_reclaim_is_logged_not_reported_done(
    session, session_factory, caplog
):
    repository = DeliveryJobRepository(session)
    job_id = repository.enqueue(JOB_KIND_NOTIFICATION, {})

    def _reclaimed_meanwhile(job_session, job):
        other = session_factory()
        try:
            other.query(DeliveryJobModel).filter(DeliveryJobModel.id == job.id).update(
                {DeliveryJobModel.status: JOB_STATUS_PENDING}, synchronize_session=False
            )
            other.commit()
        finally:
            other.close()

    with caplog.at_level(logging.INFO):
        _worker(session_factory, _reclaimed_meanwhile).run_once()

    assert repository.get(job_id).status == JOB_STATUS_PENDING
    assert f"could not mark job {job_id} as COMPLETED" in caplog.text
    assert f"completed notification job {job_id}" not in caplog.text
