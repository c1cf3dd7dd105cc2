import uuid

from sqlalchemy import Column, Date, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from .database import Base, OwnedByUser
from .user import utcnow


class JobApplication(OwnedByUser, Base):
    __tablename__ = "job_applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_name = Column(String(200), nullable=False, index=True)
    role = Column(String(200), nullable=False)
    # One of schemas.JobStatus; transitions are unconstrained
    status = Column(String(20), nullable=False, index=True)
    applied_date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="applications")
