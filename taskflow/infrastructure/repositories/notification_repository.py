"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskflow.domain.entities import Notification
from taskflow.infrastructure.models import NotificationModel
from taskflow.utils import from_naive_utc, now_utc_naive, to_naive_utc


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(
        self,
        user_id: int,
        *,
        unread_only: bool = False,
        kind: str | None = None,
        offset: int = 0,
        limit: int | None = 20,
    ) -> tuple[Sequence[Notification], int]:
        """Return one page of ``user_id``'s feed together with the total count."""

        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.is_read.is_(False))
        if kind:
            query = query.filter(NotificationModel.kind == kind)

        total = query.count()
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()], total

    def count_unread(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .scalar()
            or 0
        )

    def get_by_job(self, job_id: str) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.job_id == job_id)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def exists_recent_unread(
        self,
        *,
        recipient_id: int,
        kind: str,
        related_task_id: int | None,
        since: datetime,
    ) -> bool:
        """Return ``True`` when an unread notification matches the criteria."""

        query = (
            self.session.query(NotificationModel.id)
            .filter(NotificationModel.recipient_id == recipient_id)
            .filter(NotificationModel.kind == kind)
            .filter(NotificationModel.is_read.is_(False))
            .filter(NotificationModel.created_at >= to_naive_utc(since))
        )
        if related_task_id is None:
            query = query.filter(NotificationModel.related_task_id.is_(None))
        else:
            query = query.filter(NotificationModel.related_task_id == related_task_id)
        return query.first() is not None

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel(
            id=notification.id or str(uuid4()),
            recipient_id=notification.recipient_id,
            kind=notification.kind,
            related_task_id=notification.related_task_id,
            related_project_id=notification.related_project_id,
            job_id=notification.job_id,
            message=notification.message,
            payload=dict(notification.payload or {}),
            is_read=notification.is_read,
            created_at=to_naive_utc(notification.created_at) or now_utc_naive(),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(self, notification_id: str, *, user_id: int) -> Notification | None:
        model = self._get_owned_model(notification_id, user_id)
        if model is None:
            return None
        if not model.is_read:
            model.is_read = True
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    def mark_all_as_read(self, user_id: int) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update({NotificationModel.is_read: True}, synchronize_session=False)
        )
        self.session.commit()
        return int(updated or 0)

    def delete(self, notification_id: str, *, user_id: int) -> bool:
        model = self._get_owned_model(notification_id, user_id)
        if model is None:
            return False
        self.session.delete(model)
        self.session.commit()
        return True

    def delete_read_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.is_read.is_(True),
                NotificationModel.created_at < to_naive_utc(cutoff),
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    def _get_owned_model(
        self, notification_id: str, user_id: int
    ) -> NotificationModel | None:
        return (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.recipient_id == user_id,
            )
            .one_or_none()
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            kind=model.kind,
            message=model.message,
            payload=dict(model.payload or {}),
            related_task_id=model.related_task_id,
            related_project_id=model.related_project_id,
            job_id=model.job_id,
            is_read=bool(model.is_read),
            created_at=from_naive_utc(model.created_at),
        )


__all__ = ["NotificationRepository"]
