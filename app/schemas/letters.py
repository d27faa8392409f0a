"""
Pydantic schemas for letters API.
"""
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import LetterStatus


T = TypeVar("T")


class TagResponse(BaseModel):
    """Schema for a tag attached to a letter."""

    id: UUID
    name: str
    color: str

    model_config = {"from_attributes": True}


class LetterCreate(BaseModel):
    """Schema for creating a letter."""

    number: str = Field(..., min_length=1, max_length=50, description="Letter number")
    org: str = Field(..., min_length=1, max_length=500, description="Sender organization")
    date: datetime = Field(..., description="Letter date")
    deadline_date: Optional[datetime] = Field(None, description="Response deadline")
    type: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, max_length=10000)
    comment: Optional[str] = Field(None, max_length=5000)
    contacts: Optional[str] = Field(None, max_length=500)
    priority: int = Field(50, ge=0, le=100)
    owner_id: Optional[UUID] = Field(None, description="Responsible user")
    tag_ids: List[UUID] = Field(default_factory=list)
    applicant_name: Optional[str] = Field(None, max_length=200)
    applicant_email: Optional[str] = Field(None, max_length=320)
    applicant_phone: Optional[str] = Field(None, max_length=50)
    applicant_telegram_chat_id: Optional[str] = Field(None, max_length=50)


class LetterFieldUpdate(BaseModel):
    """Schema for a single-field letter update."""

    field: str = Field(..., description="Field to update")
    value: Any = Field(None, description="New value")


class LetterListItem(BaseModel):
    """Schema for letter in list responses."""

    id: UUID
    number: str
    org: str
    date: datetime
    deadline_date: Optional[datetime] = None
    status: LetterStatus
    type: Optional[str] = None
    priority: int
    owner_id: Optional[UUID] = None
    close_date: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LetterDetail(LetterListItem):
    """Schema for detailed letter response."""

    content: Optional[str] = None
    comment: Optional[str] = None
    contacts: Optional[str] = None
    answer: Optional[str] = None
    zordoc: Optional[str] = None
    jira_link: Optional[str] = None
    send_status: Optional[str] = None
    applicant_name: Optional[str] = None
    applicant_email: Optional[str] = None
    applicant_phone: Optional[str] = None
    applicant_telegram_chat_id: Optional[str] = None
    tags: List[TagResponse] = Field(default_factory=list)
    updated_at: datetime


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response schema."""

    items: List[T] = Field(..., description="List of items")
    total: int = Field(..., description="Total number of items", ge=0)
    page: int = Field(..., description="Current page number", ge=1)
    per_page: int = Field(..., description="Items per page", ge=1, le=100)
    pages: int = Field(..., description="Total number of pages", ge=0)


class LetterListResponse(PaginatedResponse[LetterListItem]):
    """Paginated response for letters list."""

    pass


class HistoryResponse(BaseModel):
    """Schema for one letter history entry."""

    id: UUID
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LetterUpdateResponse(BaseModel):
    """Response for a single-field update."""

    success: bool = True
    letter: LetterDetail
