"""
Staff sign-in.

Tokens embed the user's token_version: a bulk role change or a disabled
login bumps the version and every token issued before stops working.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user
from app.database import get_async_session
from app.models.user import User
from app.schemas.auth import (
    RefreshTokenRequest,
    Token,
    UserResponse,
)
from app.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _unauthorized(error: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=str(error),
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post(
    "/login",
    response_model=Token,
    summary="Sign in with email and password",
)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_async_session),
) -> Token:
    """
    OAuth2 password form: `username` carries the staff email.

    Accounts with can_login switched off are rejected with 401.
    """
    try:
        return await AuthService(db).login(form_data.username, form_data.password)
    except ValueError as e:
        raise _unauthorized(e)


@router.post(
    "/refresh",
    response_model=Token,
    summary="Exchange a refresh token for a new pair",
)
async def refresh_token(
    request: RefreshTokenRequest,
    db: AsyncSession = Depends(get_async_session),
) -> Token:
    """Refresh tokens issued before the last token_version bump are refused."""
    try:
        return await AuthService(db).refresh_token(request.refresh_token)
    except ValueError as e:
        raise _unauthorized(e)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current staff member",
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user),
) -> User:
    return current_user
