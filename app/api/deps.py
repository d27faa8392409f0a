"""
API dependencies for authentication and authorization.
"""
import secrets
from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_async_session
from app.models.enums import Permission, Role
from app.models.user import User
from app.services.auth import AuthService, decode_token
from app.services.permissions import has_permission

# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Get the current authenticated user from the JWT token.

    Args:
        token: JWT access token from Authorization header
        db: Database session

    Returns:
        Current authenticated user

    Raises:
        HTTPException: If token is invalid, revoked or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    if payload.type != "access":
        raise credentials_exception

    auth_service = AuthService(db)
    user = await auth_service.get_user_by_id(UUID(payload.sub))

    if not user:
        raise credentials_exception

    if payload.ver != (user.token_version or 0):
        raise credentials_exception

    return user


async def get_current_active_user(
    user: User = Depends(get_current_user),
) -> User:
    """
    Get the current user if login is allowed for the account.

    Raises:
        HTTPException: If login is disabled
    """
    if not user.can_login:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Login is disabled for this account",
        )
    return user


def require_permission(permission: Permission) -> Callable:
    """
    Create a dependency that checks a role permission.

    Usage:
        @router.get("/letters")
        async def list_letters(
            user: User = Depends(require_permission(Permission.VIEW_LETTERS))
        ):
            ...
    """

    async def permission_checker(
        user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_async_session),
    ) -> User:
        """Check if the user's role grants the permission."""
        if not await has_permission(db, user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return user

    return permission_checker


def require_roles(*roles: Role) -> Callable:
    """Create a dependency that admits only the given roles."""

    async def role_checker(
        user: User = Depends(get_current_active_user),
    ) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return user

    return role_checker


async def verify_cron_secret(
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Check the bearer secret of scheduled job calls.

    Raises:
        HTTPException: If the secret is unset or does not match
    """
    cron_secret = get_settings().cron_secret
    expected = f"Bearer {cron_secret}"
    if not cron_secret or not authorization or not secrets.compare_digest(
        authorization.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
