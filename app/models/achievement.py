#app/models/achievement.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import Base

class Achievement(Base):
    """
    Achievement: a research output (paper, patent, software...) of one subject.
    """
    __tablename__ = "achievements"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    subject_id: int = Column(Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True, doc="Subject")
    title: str = Column(String(200), nullable=False, doc="Title")
    type: str = Column(String(64), nullable=True, doc="paper, patent, software, ...")
    doc_path: str = Column(String(255), nullable=True, doc="Source document object key")
    pdf_path: str = Column(String(255), nullable=True, doc="PDF object key")
    created_at: datetime = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    subject = relationship("Subject", back_populates="achievements")

    def __repr__(self):
        return f"<Achievement(id={self.id}, subject_id={self.subject_id}, title='{self.title}')>"
