#app/models/user.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, func
)
from sqlalchemy.orm import relationship
from app.models.base import Base

class User(Base):
    """
    User: login account. Display data lives in the related Profile.
    """
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    username: str = Column(String(255), unique=True, nullable=False, index=True, doc="Unique username (defaults to the email)")
    email: str = Column(String(255), unique=True, nullable=False, index=True, doc="Email")
    password_hash: str = Column(String(128), nullable=False, doc="bcrypt hash, never the raw password")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Account is active")
    is_superuser: bool = Column(Boolean, default=False, nullable=False, doc="Superuser")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Created at")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Updated at")
    last_login_at: datetime = Column(DateTime(timezone=True), nullable=True, doc="Last login")

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    access_tokens = relationship("AccessToken", back_populates="user", cascade="all, delete-orphan")
    subjects = relationship("Subject", back_populates="owner")

    @property
    def role(self) -> str:
        return self.profile.role if self.profile is not None else "user"

    @property
    def name(self):
        return self.profile.name if self.profile is not None else None

    @property
    def avatar_path(self):
        return self.profile.avatar_path if self.profile is not None else None

    @property
    def is_admin(self) -> bool:
        return bool(self.is_superuser) or self.role == "admin"

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', email='{self.email}')>"
