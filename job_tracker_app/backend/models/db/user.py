import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from .database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    applications = relationship(
        "JobApplication",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
