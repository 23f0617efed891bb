import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from src.core.database import Base


class User(Base):
    """Club member. Authentication lives outside this service."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    username = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    @property
    def display_name(self) -> str:
        """Best available name for leaderboards"""
        if self.username:
            return self.username
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return f"User {self.id[:8]}"

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
