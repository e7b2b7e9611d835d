#app/schemas/user.py
from pydantic import BaseModel, Field, EmailStr, constr
from typing import Optional
from datetime import datetime

class UserBase(BaseModel):
    """
    UserBase: base user schema (shared by create/read).
    """
    username: constr(min_length=3, max_length=255) = Field(..., example="jane@example.com", description="Unique username")
    email: EmailStr = Field(..., example="jane@example.com", description="Email")
    is_active: bool = Field(True, description="User is active")
    is_superuser: bool = Field(False, description="Superuser (admin)")

class UserCreate(UserBase):
    """
    UserCreate: create a user (password required).
    """
    password: constr(min_length=6) = Field(..., example="StrongPassw0rd!", description="Password")
    name: Optional[str] = Field(None, example="Jane Doe", description="Profile display name")

class UserUpdate(BaseModel):
    """
    UserUpdate: all fields optional.
    """
    email: Optional[EmailStr] = Field(None, description="Email")
    is_active: Optional[bool] = Field(None, description="User is active")
    is_superuser: Optional[bool] = Field(None, description="Superuser (admins only)")
    password: Optional[constr(min_length=6)] = Field(None, description="New password (hashed on save)")

class UserRead(UserBase):
    id: int
    name: Optional[str] = None
    role: str = "user"
    avatar_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
