"""SQLAlchemy model for the push-related slice of a user profile."""

from sqlalchemy import Column, DateTime, Integer, String

from taskflow.infrastructure.database import Base


class UserProfileModel(Base):
    """Device registration data owned by the account service."""

    __tablename__ = "user_profile"

    id = Column(Integer, primary_key=True, autoincrement=False)
    push_token = Column(String(255), nullable=True, index=True)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["UserProfileModel"]
