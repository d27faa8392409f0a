"""
Pydantic schemas for notifications API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.enums import NotificationEvent, NotificationPriority


class NotificationResponse(BaseModel):
    """Schema for an in-app notification."""

    id: UUID
    type: NotificationEvent
    title: str
    body: Optional[str] = None
    priority: NotificationPriority
    is_read: bool
    letter_id: Optional[UUID] = None
    actor_id: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class NotificationListResponse(BaseModel):
    """Latest notifications of the current user."""

    notifications: List[NotificationResponse]
    unread_count: int = Field(..., ge=0)


class MarkReadRequest(BaseModel):
    """Mark notifications as read, either by IDs or all at once."""

    ids: Optional[List[UUID]] = None
    all: bool = False

    @model_validator(mode="after")
    def ids_or_all(self) -> "MarkReadRequest":
        if not self.all and not self.ids:
            raise ValueError("Provide ids or all")
        return self


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int = 0


class DeadlineCheckResponse(BaseModel):
    """Result of a deadline check run."""

    success: bool = True
    checked: int = 0
    urgent: int = 0
    overdue: int = 0
    escalations: int = 0
