"""
API routes for service requests.

Endpoints:
- POST /api/requests - Submit a request
- GET /api/requests/{id} - Get request details
- PATCH /api/requests/{id} - Update status, priority, category or assignee
- POST /api/requests/sla/update - Recompute SLA statuses
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.database import get_async_session
from app.models.enums import Permission
from app.models.request import Request
from app.models.user import User
from app.schemas.requests import (
    RequestCreate,
    RequestResponse,
    RequestUpdate,
    SlaUpdateResponse,
)
from app.services.request_sla import hours_until_deadline, update_sla_statuses
from app.services.requests import RequestNotFoundError, RequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])


def to_response(request: Request) -> RequestResponse:
    response = RequestResponse.model_validate(request)
    response.hours_left = hours_until_deadline(request.sla_deadline)
    return response


@router.post(
    "",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit request",
    description="Public intake. SLA deadlines are derived from the priority.",
)
async def create_request(
    data: RequestCreate,
    db: AsyncSession = Depends(get_async_session),
) -> RequestResponse:
    """Create a service request."""
    request = await RequestService(db).create(data)
    return to_response(request)


@router.post(
    "/sla/update",
    response_model=SlaUpdateResponse,
    summary="Recompute SLA statuses",
)
async def update_request_sla(
    user: User = Depends(require_permission(Permission.MANAGE_REQUESTS)),
    db: AsyncSession = Depends(get_async_session),
) -> SlaUpdateResponse:
    """Recompute the SLA status of all open requests."""
    updated, checked = await update_sla_statuses(db)
    return SlaUpdateResponse(updated=updated, checked=checked)


@router.get(
    "/{request_id}",
    response_model=RequestResponse,
    summary="Get request details",
)
async def get_request(
    request_id: UUID,
    user: User = Depends(require_permission(Permission.VIEW_REQUESTS)),
    db: AsyncSession = Depends(get_async_session),
) -> RequestResponse:
    """Get a single request."""
    try:
        request = await RequestService(db).get_request(request_id)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return to_response(request)


@router.patch(
    "/{request_id}",
    response_model=RequestResponse,
    summary="Update request",
)
async def update_request(
    request_id: UUID,
    data: RequestUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_REQUESTS)),
    db: AsyncSession = Depends(get_async_session),
) -> RequestResponse:
    """Update a request; every changed field is recorded in history."""
    try:
        request = await RequestService(db).update(request_id, data, user)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return to_response(request)
