"""
API routes for user administration.

Endpoints:
- POST /api/users/bulk - Change role, login flag or delete several users
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_roles
from app.database import get_async_session
from app.models.enums import Role
from app.models.user import User
from app.schemas.users import UserBulkAction, UserBulkResult
from app.services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/bulk",
    response_model=UserBulkResult,
    response_model_exclude_none=True,
    summary="Bulk user action",
    description="Admin only. At least one admin must remain after any action.",
)
async def bulk_action(
    data: UserBulkAction,
    user: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_async_session),
) -> UserBulkResult:
    """
    Apply an action to several users.

    - **role**: value ADMIN promotes, anything else demotes to EMPLOYEE
    - **can_login**: true/"enable" allows login, anything else disables it
    - **delete**: removes the users (not yourself)
    """
    service = UserService(db)

    try:
        if data.action == "delete":
            deleted = await service.delete_users(data.ids, user)
            return UserBulkResult(deleted=deleted)
        if data.action == "role":
            updated = await service.set_role(data.ids, data.value)
        else:
            updated = await service.set_can_login(data.ids, data.value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return UserBulkResult(updated=updated)
