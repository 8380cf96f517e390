"""Access to the push token stored on user profiles."""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.infrastructure.models import UserProfileModel
from taskflow.utils import now_utc_naive


class PushTokenRepository:
    """Read, register and invalidate device push tokens."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_token(self, user_id: int) -> str | None:
        model = self.session.get(UserProfileModel, user_id)
        if model is None:
            return None
        return model.push_token or None

    def register(self, user_id: int, token: str | None) -> None:
        model = self.session.get(UserProfileModel, user_id)
        if model is None:
            model = UserProfileModel(id=user_id)
        model.push_token = token
        model.updated_at = now_utc_naive()
        self.session.add(model)
        self.session.commit()

    def clear_token(self, token: str) -> int:
        """Null every profile still holding ``token``; repeated calls are no-ops."""

        result = self.session.execute(
            update(UserProfileModel)
            .where(UserProfileModel.push_token == token)
            .values(push_token=None, updated_at=now_utc_naive())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return int(result.rowcount or 0)


__all__ = ["PushTokenRepository"]
