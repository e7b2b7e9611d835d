#app/models/subject.py
from datetime import datetime, date, timezone
from app.models.base import Base
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import relationship
from app.core import subject_metrics

def _utcnow():
    return datetime.now(timezone.utc)

class Subject(Base):
    """
    Subject: a tracked research project with a status and a kickoff..deadline window.
    """
    __tablename__ = "subjects"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    title: str = Column(String(200), nullable=False, index=True, doc="Title")
    status: str = Column(String(16), nullable=False, default="preparing", index=True, doc="preparing, launched or finished")
    owner_id: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, doc="Owner")
    kickoff_date: date = Column(Date, nullable=True, doc="Kickoff date")
    deadline_date: date = Column(Date, nullable=True, doc="Deadline date")
    # microsecond timestamps keep "newest first" ordering exact
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow, nullable=False, doc="Created at")
    updated_at: datetime = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False, doc="Updated at")

    owner = relationship("User", back_populates="subjects")
    achievements = relationship("Achievement", back_populates="subject", lazy="selectin")

    __table_args__ = (
        Index("ix_subjects_deadline_date", "deadline_date"),
        Index("ix_subjects_created_at", "created_at"),
    )

    @property
    def achievement_count(self) -> int:
        return len(self.achievements)

    @property
    def owner_name(self):
        return self.owner.name if self.owner is not None else None

    @property
    def progress(self) -> int:
        return subject_metrics.calculate_progress(self)

    @property
    def is_overdue(self) -> bool:
        return subject_metrics.is_overdue(self)

    @property
    def is_due_soon(self) -> bool:
        return subject_metrics.is_due_soon(self)

    def __repr__(self):
        return f"<Subject(id={self.id}, title='{self.title}', status='{self.status}')>"
