"""
Authentication schemas for login and token management.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.models.enums import Role


class UserLogin(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class Token(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    """Schema for JWT token payload."""

    sub: str  # User ID
    exp: int  # Expiration timestamp
    type: str  # "access" or "refresh"
    ver: int = 0  # User token version


class RefreshTokenRequest(BaseModel):
    """Schema for refresh token request."""

    refresh_token: str


class UserResponse(BaseModel):
    """Schema for user response (without sensitive data)."""

    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role
    can_login: bool
    telegram_chat_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
