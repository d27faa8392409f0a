"""
Service request handling: intake, updates with history and SLA tracking.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RequestStatus
from app.models.history import RequestHistory
from app.models.request import Request
from app.models.user import User
from app.schemas.requests import RequestCreate, RequestUpdate
from app.services.request_sla import apply_sla_deadlines, calculate_sla_status

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("status", "priority", "category", "assigned_to_id")


class RequestNotFoundError(ValueError):
    """Request does not exist or was deleted."""


def _history_value(value):
    if value is None:
        return None
    return getattr(value, "value", None) or str(value)


class RequestService:
    """Service class for request operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the request service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_request(self, request_id: uuid.UUID) -> Request:
        """
        Raises:
            RequestNotFoundError: If the request is missing or deleted
        """
        result = await self.db.execute(
            select(Request).where(Request.id == request_id, Request.deleted_at.is_(None))
        )
        request = result.scalar_one_or_none()
        if not request:
            raise RequestNotFoundError("Request not found")
        return request

    async def create(self, data: RequestCreate) -> Request:
        """Create a request with SLA deadlines derived from its priority."""
        now = datetime.now(timezone.utc)
        request = Request(
            id=uuid.uuid4(),
            organization=data.organization.strip(),
            contact_name=data.contact_name.strip(),
            contact_email=data.contact_email,
            contact_phone=data.contact_phone,
            contact_telegram=data.contact_telegram,
            description=data.description.strip(),
            priority=data.priority,
            category=data.category,
            status=RequestStatus.NEW,
            created_at=now,
        )
        apply_sla_deadlines(request, created_at=now)

        self.db.add(request)
        await self.db.commit()

        logger.info(f"Request {request.id} created with priority {request.priority}")
        return request

    async def update(
        self, request_id: uuid.UUID, data: RequestUpdate, actor: User
    ) -> Request:
        """
        Apply changes and record each changed field in history.

        Leaving NEW records the first response. Moving to DONE sets
        resolved_at. A priority change recomputes the deadlines.
        """
        request = await self.get_request(request_id)
        now = datetime.now(timezone.utc)

        changes = data.model_dump(exclude_unset=True)
        for field in TRACKED_FIELDS:
            if field not in changes:
                continue
            new_value = changes[field]
            old_value = getattr(request, field)
            if _history_value(old_value) == _history_value(new_value):
                continue

            setattr(request, field, new_value)
            self.db.add(
                RequestHistory(
                    request_id=request.id,
                    user_id=actor.id,
                    field=field,
                    old_value=_history_value(old_value),
                    new_value=_history_value(new_value),
                )
            )

            if field == "priority":
                apply_sla_deadlines(request)
            if field == "status":
                if request.first_response_at is None and new_value != RequestStatus.NEW:
                    request.first_response_at = now
                if new_value == RequestStatus.DONE and request.resolved_at is None:
                    request.resolved_at = now

        request.sla_status = calculate_sla_status(
            request.sla_deadline, request.resolved_at, request.status, now
        )
        await self.db.commit()

        logger.info(f"Request {request.id} updated by {actor.id}: {sorted(changes)}")
        return request
