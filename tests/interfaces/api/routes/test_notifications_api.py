"""Tests for the notification HTTP endpoints and websocket channel."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from main import create_app
from taskflow.application.use_cases.notifications import create_notification
from taskflow.infrastructure.notifications import (
    EVENT_ALL_NOTIFICATIONS_READ,
    EVENT_INIT,
    EVENT_NOTIFICATION_DELETED,
    EVENT_NOTIFICATION_READ,
)
from taskflow.infrastructure.security import create_access_token


@pytest.fixture()
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def _seed(session, recipient_id: int, count: int = 1, kind: str = "COMMENT"):
    return [
        create_notification(
            session,
            recipient_id=recipient_id,
            kind=kind,
            message=f"note {index}",
            related_task_id=index,
        )
        for index in range(count)
    ]


def _ws_url(user_id: int) -> str:
    return f"/notifications/ws?token={create_access_token(user_id)}"


def test_requests_without_valid_token_are_rejected(client):
    expired = create_access_token(1, expires_delta=timedelta(minutes=-5))

    assert client.get("/notifications/").status_code == 401
    assert client.get("/notifications/unread-count").status_code == 401
    response = client.get(
        "/notifications/", headers={"Authorization": f"Bearer {expired}"}
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials"}


def test_list_returns_only_own_notifications(client, session, auth_headers):
    _seed(session, 1, 3)
    _seed(session, 2, 2, kind="DUE_DATE")

    response = client.get("/notifications/?limit=2", headers=auth_headers(1))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["pages"] == 2
    assert [item["message"] for item in body["items"]] == ["note 2", "note 1"]
    assert {item["recipient_id"] for item in body["items"]} == {1}


def test_list_filters_and_validates_query(client, session, auth_headers):
    _seed(session, 1, 2)
    _seed(session, 1, 1, kind="PRIORITY")

    filtered = client.get("/notifications/?kind=PRIORITY", headers=auth_headers(1))
    unknown_kind = client.get("/notifications/?kind=GOSSIP", headers=auth_headers(1))
    too_large = client.get("/notifications/?limit=500", headers=auth_headers(1))

    assert filtered.json()["total"] == 1
    assert unknown_kind.status_code == 422
    assert too_large.status_code == 422


def test_mark_read_and_unread_count(client, session, auth_headers):
    first, _ = _seed(session, 1, 2)

    response = client.patch(f"/notifications/{first.id}/read", headers=auth_headers(1))
    count = client.get("/notifications/unread-count", headers=auth_headers(1))

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert count.json() == {"unread_count": 1}


def test_foreign_or_unknown_notification_is_not_found(client, session, auth_headers):
    notification = _seed(session, 1)[0]

    assert client.patch(
        f"/notifications/{notification.id}/read", headers=auth_headers(2)
    ).status_code == 404
    assert client.delete(
        f"/notifications/{notification.id}", headers=auth_headers(2)
    ).status_code == 404
    assert client.patch("/notifications/missing/read", headers=auth_headers(1)).status_code == 404


def test_mark_all_read_is_idempotent(client, session, auth_headers):
    _seed(session, 1, 3)

    first = client.patch("/notifications/read-all", headers=auth_headers(1))
    second = client.patch("/notifications/read-all", headers=auth_headers(1))

    assert first.json() == {"updated_count": 3}
    assert second.json() == {"updated_count": 0}


def test_delete_removes_notification(client, session, auth_headers):
    notification = _seed(session, 1)[0]

    response = client.delete(f"/notifications/{notification.id}", headers=auth_headers(1))

    assert response.status_code == 204
    assert client.get("/notifications/", headers=auth_headers(1)).json()["total"] == 0


def test_websocket_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/notifications/ws?token=not-a-jwt") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 1008


def test_websocket_sends_unread_count_on_connect(client, session):
    _seed(session, 1, 2)

    with client.websocket_connect(_ws_url(1)) as websocket:
        assert websocket.receive_json() == {"type": EVENT_INIT, "data": {"unread_count": 2}}
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}


def test_read_state_changes_reach_every_open_connection(client, session, auth_headers):
    first, second = _seed(session, 1, 2)

    with client.websocket_connect(_ws_url(1)) as phone, client.websocket_connect(
        _ws_url(1)
    ) as laptop:
        phone.receive_json()
        laptop.receive_json()

        client.patch(f"/notifications/{first.id}/read", headers=auth_headers(1))
        expected = {"type": EVENT_NOTIFICATION_READ, "data": {"notification_id": first.id}}
        assert phone.receive_json() == expected
        assert laptop.receive_json() == expected

        client.patch("/notifications/read-all", headers=auth_headers(1))
        assert phone.receive_json() == {
            "type": EVENT_ALL_NOTIFICATIONS_READ,
            "data": {"updated_count": 1},
        }
        assert laptop.receive_json()["type"] == EVENT_ALL_NOTIFICATIONS_READ

        client.delete(f"/notifications/{second.id}", headers=auth_headers(1))
        assert phone.receive_json() == {
            "type": EVENT_NOTIFICATION_DELETED,
            "data": {"notification_id": second.id},
        }


def test_websocket_ack_marks_notifications_read(client, session, auth_headers):
    first, second = _seed(session, 1, 2)

    with client.websocket_connect(_ws_url(1)) as websocket:
        websocket.receive_json()
        websocket.send_json({"type": "ack", "ids": [first.id, "unknown"]})
        assert websocket.receive_json() == {
            "type": EVENT_NOTIFICATION_READ,
            "data": {"notification_id": first.id},
        }

    count = client.get("/notifications/unread-count", headers=auth_headers(1))
    assert count.json() == {"unread_count": 1}
