"""
API routes for letters.

Endpoints:
- GET /api/letters - List letters with filters and pagination
- POST /api/letters - Create a letter
- GET /api/letters/{id} - Get letter details
- PATCH /api/letters/{id} - Update one field of a letter
- DELETE /api/letters/{id} - Soft delete a letter
- POST /api/letters/{id}/duplicate - Copy a letter
- GET /api/letters/{id}/history - Change history of a letter
"""
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.database import get_async_session
from app.models.enums import LetterStatus, Permission
from app.models.letter import Letter
from app.models.user import User
from app.schemas.letters import (
    HistoryResponse,
    LetterCreate,
    LetterDetail,
    LetterFieldUpdate,
    LetterListItem,
    LetterListResponse,
    LetterUpdateResponse,
)
from app.services.letters import (
    InvalidLetterFieldError,
    LetterConflictError,
    LetterNotFoundError,
    LetterPermissionError,
    LetterService,
)
from app.services.permissions import has_permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/letters", tags=["letters"])


def to_http_exception(error: ValueError) -> HTTPException:
    """Map letter service errors to HTTP errors."""
    if isinstance(error, LetterNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, LetterPermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, LetterConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


async def verify_letter_access(
    letter_id: UUID,
    user: User,
    db: AsyncSession,
) -> Letter:
    """
    Load a letter the user may work with.

    Users without MANAGE_LETTERS only reach letters they own.

    Raises:
        HTTPException: 404 if the letter is missing, 403 if not accessible
    """
    service = LetterService(db)
    try:
        letter = await service.get_letter(letter_id)
    except LetterNotFoundError as e:
        raise to_http_exception(e)

    if letter.owner_id != user.id and not await has_permission(
        db, user, Permission.MANAGE_LETTERS
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return letter


@router.get(
    "",
    response_model=LetterListResponse,
    summary="List letters",
    description="Get paginated list of letters. Deleted letters are excluded.",
)
async def list_letters(
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    status_filter: Optional[LetterStatus] = Query(None, alias="status"),
    owner_id: Optional[UUID] = Query(None, description="Filter by owner"),
    search: Optional[str] = Query(None, max_length=200, description="Search number or organization"),
    user: User = Depends(require_permission(Permission.VIEW_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> LetterListResponse:
    """List letters with filters."""
    service = LetterService(db)
    letters, total, pages = await service.list_letters(
        page=page,
        per_page=per_page,
        status=status_filter,
        owner_id=owner_id,
        search=search,
    )
    return LetterListResponse(
        items=[LetterListItem.model_validate(letter) for letter in letters],
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )


@router.post(
    "",
    response_model=LetterDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create letter",
)
async def create_letter(
    data: LetterCreate,
    user: User = Depends(require_permission(Permission.MANAGE_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> LetterDetail:
    """Create a letter and notify subscribers."""
    service = LetterService(db)
    try:
        letter = await service.create(data, user)
    except ValueError as e:
        raise to_http_exception(e)
    return LetterDetail.model_validate(letter)


@router.get(
    "/{letter_id}",
    response_model=LetterDetail,
    summary="Get letter details",
)
async def get_letter(
    letter_id: UUID,
    user: User = Depends(require_permission(Permission.VIEW_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> LetterDetail:
    """Get a single letter."""
    letter = await verify_letter_access(letter_id, user, db)
    return LetterDetail.model_validate(letter)


@router.patch(
    "/{letter_id}",
    response_model=LetterUpdateResponse,
    summary="Update letter field",
    description="Update a single field. Every update is recorded in the letter history.",
)
async def update_letter(
    letter_id: UUID,
    data: LetterFieldUpdate,
    user: User = Depends(require_permission(Permission.VIEW_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> LetterUpdateResponse:
    """
    Update one field of a letter.

    - **field**: number, org, status, owner, priority, deadline_date or a text field
    - **value**: new value
    """
    await verify_letter_access(letter_id, user, db)

    service = LetterService(db)
    try:
        letter = await service.update_field(letter_id, data.field, data.value, user)
    except ValueError as e:
        raise to_http_exception(e)

    return LetterUpdateResponse(letter=LetterDetail.model_validate(letter))


@router.delete(
    "/{letter_id}",
    summary="Delete letter",
    description="Soft delete. Only administrators may delete letters.",
)
async def delete_letter(
    letter_id: UUID,
    user: User = Depends(require_permission(Permission.VIEW_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Soft delete a letter."""
    service = LetterService(db)
    try:
        await service.soft_delete(letter_id, user)
    except ValueError as e:
        raise to_http_exception(e)
    return {"success": True}


@router.post(
    "/{letter_id}/duplicate",
    summary="Duplicate letter",
)
async def duplicate_letter(
    letter_id: UUID,
    user: User = Depends(require_permission(Permission.MANAGE_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Copy a letter; the copy is owned by the current user."""
    service = LetterService(db)
    try:
        letter = await service.duplicate(letter_id, user)
    except ValueError as e:
        raise to_http_exception(e)
    return {"success": True, "id": str(letter.id), "number": letter.number}


@router.get(
    "/{letter_id}/history",
    response_model=List[HistoryResponse],
    summary="Letter history",
)
async def get_letter_history(
    letter_id: UUID,
    user: User = Depends(require_permission(Permission.VIEW_LETTERS)),
    db: AsyncSession = Depends(get_async_session),
) -> List[HistoryResponse]:
    """Change history of a letter, newest first."""
    await verify_letter_access(letter_id, user, db)
    history = await LetterService(db).get_history(letter_id)
    return [HistoryResponse.model_validate(entry) for entry in history]
