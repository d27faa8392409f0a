"""
Authentication service for login and token management.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.user import User
from app.schemas.auth import Token, TokenPayload

settings = get_settings()

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REFRESH_TOKEN_EXPIRE_DAYS = 7


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def _encode_token(user: User, token_type: str, expires_delta: timedelta) -> str:
    payload = {
        "sub": str(user.id),
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
        "ver": user.token_version or 0,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    """
    Create a JWT access token for a user.

    The token carries the user's token version, so bumping the
    version invalidates every issued token.
    """
    return _encode_token(
        user, "access", timedelta(minutes=settings.access_token_expire_minutes)
    )


def create_refresh_token(user: User) -> str:
    """Create a JWT refresh token for a user."""
    return _encode_token(user, "refresh", timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token string

    Returns:
        TokenPayload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenPayload(
            sub=payload["sub"],
            exp=payload["exp"],
            type=payload["type"],
            ver=payload.get("ver", 0),
        )
    except (JWTError, KeyError):
        return None


class AuthService:
    """Service class for authentication operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the auth service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Get a user by their email address.

        Args:
            email: User's email address

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get a user by their ID.

        Args:
            user_id: User's UUID

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def login(self, email: str, password: str) -> Token:
        """
        Authenticate a user and return tokens.

        Args:
            email: User's email address
            password: User's password

        Returns:
            Token object with access and refresh tokens

        Raises:
            ValueError: If credentials are invalid or login is disabled
        """
        user = await self.get_user_by_email(email)

        if not user or not user.hashed_password:
            raise ValueError("Invalid email or password")

        if not verify_password(password, user.hashed_password):
            raise ValueError("Invalid email or password")

        if not user.can_login:
            raise ValueError("Login is disabled for this account")

        return Token(
            access_token=create_access_token(user),
            refresh_token=create_refresh_token(user),
        )

    async def refresh_token(self, refresh_token: str) -> Token:
        """
        Refresh access token using a valid refresh token.

        Args:
            refresh_token: The refresh token

        Returns:
            New Token object with fresh access and refresh tokens

        Raises:
            ValueError: If refresh token is invalid or expired
        """
        payload = decode_token(refresh_token)

        if not payload:
            raise ValueError("Invalid refresh token")

        if payload.type != "refresh":
            raise ValueError("Invalid token type")

        user = await self.get_user_by_id(UUID(payload.sub))

        if not user:
            raise ValueError("User not found")

        if payload.ver != (user.token_version or 0):
            raise ValueError("Token has been revoked")

        if not user.can_login:
            raise ValueError("Login is disabled for this account")

        return Token(
            access_token=create_access_token(user),
            refresh_token=create_refresh_token(user),
        )
