"""
Test configuration and shared fixtures.

Uses SQLite in-memory database for fast, isolated tests.
External channels and Redis are replaced with mocks.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.models.base import Base
from app.models.enums import LetterStatus, Role
from app.models.letter import Letter
from app.models.tag import Tag
from app.models.user import User
from app.models.user_profile import UserProfile
from app.services.auth import create_access_token, hash_password
from app.services.notifications.base import NotificationResult

# SQLite async engine for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
)

TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def make_channel(name: str, success: bool = True) -> MagicMock:
    """Mock notification channel whose send returns a fixed result."""
    channel = MagicMock()
    channel.channel_name = name
    channel.is_configured.return_value = True
    channel.send = AsyncMock(
        return_value=NotificationResult(success=success, channel=name)
    )
    return channel


@pytest.fixture(autouse=True)
def mock_channels():
    """Replace email, Telegram and SMS channels with mocks."""
    channels = {
        "email": make_channel("email"),
        "telegram": make_channel("telegram"),
        "sms": make_channel("sms"),
    }
    with patch("app.services.notification_service.get_email_channel", return_value=channels["email"]), \
         patch("app.services.notification_service.get_telegram_channel", return_value=channels["telegram"]), \
         patch("app.services.notification_service.get_sms_channel", return_value=channels["sms"]):
        yield channels


@pytest.fixture(autouse=True)
def mock_redis():
    """In-memory stand-in for the Redis permission cache."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    with patch(
        "app.services.permissions.get_redis_client",
        new=AsyncMock(return_value=redis),
    ):
        yield redis


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables and provide a test database session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with overridden database dependency."""
    from app.database import get_async_session
    from app.main import app

    async def override_get_async_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    db_session: AsyncSession,
    email: str,
    role: Role = Role.EMPLOYEE,
    **kwargs,
) -> User:
    """Create and persist a user."""
    user = User(
        id=uuid.uuid4(),
        email=email,
        name=email.split("@")[0].title(),
        hashed_password=hash_password("TestPass123"),
        role=role,
        can_login=True,
        **kwargs,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def headers_for(user: User) -> dict:
    """JWT auth headers for a user."""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    """Create an admin user."""
    return await create_user(db_session, "admin@example.com", Role.ADMIN)


@pytest_asyncio.fixture
async def employee(db_session: AsyncSession) -> User:
    """Create an employee user."""
    return await create_user(db_session, "employee@example.com", Role.EMPLOYEE)


@pytest_asyncio.fixture
async def manager(db_session: AsyncSession) -> User:
    """Create a manager with a phone number and Telegram chat."""
    user = await create_user(
        db_session,
        "manager@example.com",
        Role.MANAGER,
        telegram_chat_id="555000",
    )
    db_session.add(UserProfile(user_id=user.id, phone="+998900000000"))
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def employee_headers(employee: User) -> dict:
    return headers_for(employee)


@pytest_asyncio.fixture
async def tags(db_session: AsyncSession) -> list[Tag]:
    """Create two tags."""
    items = [
        Tag(id=uuid.uuid4(), name="urgent", color="#EF4444"),
        Tag(id=uuid.uuid4(), name="finance", color="#10B981"),
    ]
    db_session.add_all(items)
    await db_session.commit()
    return items


@pytest_asyncio.fixture
async def letter(db_session: AsyncSession, employee: User, tags: list[Tag]) -> Letter:
    """Create a letter owned by the employee, with processing results filled in."""
    now = datetime.now(timezone.utc)
    item = Letter(
        id=uuid.uuid4(),
        number="101/A",
        org="Ministry of Health",
        date=now - timedelta(days=5),
        deadline_date=now + timedelta(days=10),
        status=LetterStatus.IN_PROGRESS,
        content="Request for statistics",
        answer="Statistics attached",
        zordoc="ZD-17",
        jira_link="https://jira.example.com/DMED-1",
        send_status="sent",
        close_date=now,
        applicant_access_token="portal-token-1",
        owner_id=employee.id,
        tags=list(tags),
    )
    db_session.add(item)
    await db_session.commit()
    return item
