#app/models/profile.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.models.base import Base

class Profile(Base):
    """
    Profile: display name, role and avatar of a user (one per user).
    """
    __tablename__ = "profiles"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True, doc="Owning user")
    name: str = Column(String(128), nullable=True, doc="Display name")
    role: str = Column(String(16), nullable=False, default="user", doc="admin or user")
    avatar_path: str = Column(String(255), nullable=True, doc="Avatar object key in storage")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="profile")

    def __repr__(self):
        return f"<Profile(user_id={self.user_id}, name='{self.name}', role='{self.role}')>"
