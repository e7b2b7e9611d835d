#app/schemas/auth.py
from pydantic import BaseModel, Field, EmailStr, constr
from typing import Optional

class SignUpRequest(BaseModel):
    """
    SignUpRequest: registration by email; creates the user and its profile.
    """
    email: EmailStr = Field(..., example="jane@example.com")
    password: constr(min_length=6) = Field(..., example="StrongPassw0rd!", description="At least 6 characters")
    name: constr(min_length=1, max_length=128) = Field(..., example="Jane Doe", description="Profile display name")

class LoginResponse(BaseModel):
    """
    LoginResponse: successful login (access + refresh).
    """
    access_token: str = Field(..., example="eyJhbGciOi...", description="JWT access token")
    token_type: str = Field("bearer", example="bearer")
    expires_in: int = Field(..., description="Access token lifetime (seconds)", example=3600)
    refresh_token: Optional[str] = Field(None, example="eyJ0eXAiOiJKV...", description="JWT refresh token")

class TokenRefreshRequest(BaseModel):
    refresh_token: str = Field(..., example="eyJ0eXAiOiJKV...", description="JWT refresh token")

class TokenRefreshResponse(BaseModel):
    """
    TokenRefreshResponse: rotated access + refresh tokens.
    """
    access_token: str = Field(..., example="eyJhbGciOi...")
    token_type: str = Field("bearer", example="bearer")
    expires_in: int = Field(..., example=3600)
    refresh_token: str = Field(..., example="eyJ0eXAiOiJKV...")
