"""
Pydantic schemas for service requests API.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import RequestCategory, RequestPriority, RequestStatus, SlaStatus


class RequestCreate(BaseModel):
    """Schema for submitting a service request."""

    organization: str = Field(..., min_length=1, max_length=500)
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    contact_telegram: Optional[str] = Field(None, max_length=100)
    description: str = Field(..., min_length=1, max_length=10000)
    priority: RequestPriority = RequestPriority.NORMAL
    category: RequestCategory = RequestCategory.OTHER


class RequestUpdate(BaseModel):
    """Schema for updating a service request."""

    status: Optional[RequestStatus] = None
    priority: Optional[RequestPriority] = None
    category: Optional[RequestCategory] = None
    assigned_to_id: Optional[UUID] = None


class RequestResponse(BaseModel):
    """Schema for a service request."""

    id: UUID
    organization: str
    contact_name: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_telegram: Optional[str] = None
    description: str
    status: RequestStatus
    priority: RequestPriority
    category: RequestCategory
    assigned_to_id: Optional[UUID] = None
    sla_deadline: Optional[datetime] = None
    first_response_deadline: Optional[datetime] = None
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    sla_status: SlaStatus
    hours_left: Optional[float] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SlaUpdateResponse(BaseModel):
    """Result of recomputing SLA statuses."""

    success: bool = True
    updated: int = 0
    checked: int = 0
