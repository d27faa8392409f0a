"""
Pydantic schemas for users API.
"""
from typing import Any, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UserBulkAction(BaseModel):
    """Schema for a bulk action over several users."""

    ids: List[UUID] = Field(..., min_length=1, description="Target user IDs")
    action: Literal["role", "can_login", "delete"]
    value: Any = Field(None, description="Role name or login flag")


class UserBulkResult(BaseModel):
    """Result of a bulk action."""

    success: bool = True
    updated: Optional[int] = None
    deleted: Optional[int] = None
