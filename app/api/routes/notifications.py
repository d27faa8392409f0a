"""
API routes for in-app notifications and notification settings.

Endpoints:
- GET /api/notifications - Latest notifications of the current user
- PATCH /api/notifications - Mark notifications as read
- GET/PUT /api/notifications/settings - Notification preferences
- POST /api/notifications/sla - Run the letter deadline check
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user, require_permission
from app.config import get_settings
from app.database import get_async_session
from app.models.enums import Permission
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notifications import (
    DeadlineCheckResponse,
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from app.services.deadlines import run_deadline_check
from app.services.notification_settings import (
    NotificationSettings,
    NotificationSettingsUpdate,
    get_user_settings,
    save_user_settings,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
    description="Latest notifications of the current user, newest first.",
)
async def list_notifications(
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
) -> NotificationListResponse:
    """Get the latest notifications and the unread count."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc())
        .limit(settings.notification_list_limit)
    )
    notifications = result.scalars().all()

    unread_count = await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
    ) or 0

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.patch(
    "",
    response_model=MarkReadResponse,
    summary="Mark notifications as read",
)
async def mark_notifications_read(
    data: MarkReadRequest,
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
) -> MarkReadResponse:
    """
    Mark notifications of the current user as read.

    - **ids**: notification IDs
    - **all**: mark every notification as read
    """
    query = update(Notification).where(
        Notification.user_id == user.id,
        Notification.is_read.is_(False),
    )
    if not data.all:
        query = query.where(Notification.id.in_(data.ids))

    result = await db.execute(query.values(is_read=True))
    await db.commit()

    return MarkReadResponse(updated=result.rowcount)


@router.get(
    "/settings",
    response_model=NotificationSettings,
    summary="Get notification settings",
)
async def get_notification_settings(
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
) -> NotificationSettings:
    """Effective notification settings of the current user."""
    return await get_user_settings(db, user)


@router.put(
    "/settings",
    response_model=NotificationSettings,
    summary="Update notification settings",
    description="Partial update. The merged settings must pass validation.",
)
async def update_notification_settings(
    data: NotificationSettingsUpdate,
    user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
) -> NotificationSettings:
    """Validate and store notification settings."""
    try:
        return await save_user_settings(db, user, data)
    except ValidationError as e:
        errors = e.errors()
        message = errors[0]["msg"] if errors else "Invalid settings"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
        )


@router.post(
    "/sla",
    response_model=DeadlineCheckResponse,
    summary="Run deadline check",
    description="Notify owners about urgent and overdue letters.",
)
async def check_deadlines(
    user: User = Depends(require_permission(Permission.MANAGE_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> DeadlineCheckResponse:
    """Run the letter deadline check now."""
    result = await run_deadline_check(db)
    return DeadlineCheckResponse(
        checked=result.checked,
        urgent=result.urgent,
        overdue=result.overdue,
        escalations=result.escalations,
    )
