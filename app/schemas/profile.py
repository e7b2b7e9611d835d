#app/schemas/profile.py
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

ProfileRole = Literal["admin", "user"]

class ProfileUpdate(BaseModel):
    """
    ProfileUpdate: only admins may change the role.
    """
    name: Optional[str] = Field(None, max_length=128, example="Jane Doe")
    avatar_path: Optional[str] = Field(None, example="avatars/3f2a.png")
    role: Optional[ProfileRole] = None

class ProfileRead(BaseModel):
    user_id: int
    name: Optional[str] = None
    role: ProfileRole = "user"
    avatar_path: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
