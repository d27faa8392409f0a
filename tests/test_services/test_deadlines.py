"""Tests for letter deadline check."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LetterStatus, NotificationEvent
from app.models.letter import Letter
from app.models.notification import Notification, NotificationSubscription
from app.models.user import User
from app.services.deadlines import (
    build_deadline_message,
    days_until_deadline,
    deadline_level,
    run_deadline_check,
)

NOW = datetime(2026, 10, 14, 6, 0, tzinfo=timezone.utc)


async def make_letter(
    db_session: AsyncSession,
    owner: Optional[User],
    deadline: datetime,
    status: LetterStatus = LetterStatus.IN_PROGRESS,
    number: str = None,
) -> Letter:
    letter = Letter(
        id=uuid.uuid4(),
        number=number or f"L-{uuid.uuid4().hex[:6]}",
        org="Regional Health Department",
        date=NOW - timedelta(days=30),
        deadline_date=deadline,
        status=status,
        owner_id=owner.id if owner else None,
    )
    db_session.add(letter)
    await db_session.commit()
    return letter


@pytest_asyncio.fixture
async def admin_manager(db_session: AsyncSession, admin: User, manager: User) -> list:
    return [admin, manager]


async def notifications_of(db_session: AsyncSession, user: User) -> list:
    result = await db_session.execute(
        select(Notification).where(Notification.user_id == user.id)
    )
    return list(result.scalars().all())


class TestHelpers:
    """Tests for deadline helpers."""

    def test_days_until_deadline_uses_calendar_days(self):
        assert days_until_deadline(NOW.replace(hour=23), NOW) == 0
        assert days_until_deadline(NOW + timedelta(days=2), NOW) == 2
        assert days_until_deadline(NOW - timedelta(days=1), NOW) == -1

    def test_naive_deadline_is_utc(self):
        assert days_until_deadline(datetime(2026, 10, 15), NOW) == 1

    def test_deadline_level(self):
        assert deadline_level(2) == "urgent"
        assert deadline_level(-1) == "late"
        assert deadline_level(-3) == "overdue"

    def test_message(self):
        letter = Letter(number="7", org="Clinic", deadline_date=NOW)
        title, body = build_deadline_message(letter, -2)
        assert "№-7" in title
        assert "14.10.2026" in body
        assert "Просрочка: 2 дн." in body


class TestRunDeadlineCheck:
    """Tests for run_deadline_check."""

    async def test_urgent_and_overdue(self, db_session: AsyncSession, employee: User):
        await make_letter(db_session, employee, NOW + timedelta(days=2))
        await make_letter(db_session, employee, NOW - timedelta(days=1))
        await make_letter(db_session, employee, NOW + timedelta(days=10))
        await make_letter(
            db_session, employee, NOW - timedelta(days=1), status=LetterStatus.DONE
        )

        result = await run_deadline_check(db_session, now=NOW)

        assert result.checked == 2
        assert result.urgent == 1
        assert result.overdue == 1
        assert result.escalations == 0

        notifications = await notifications_of(db_session, employee)
        assert {n.type for n in notifications} == {
            NotificationEvent.DEADLINE_URGENT.value,
            NotificationEvent.DEADLINE_OVERDUE.value,
        }
        overdue = next(n for n in notifications if n.type == "DEADLINE_OVERDUE")
        assert overdue.meta["level"] == "late"
        assert overdue.dedupe_key.startswith("SLA:DEADLINE_OVERDUE:")
        assert overdue.dedupe_key.endswith(":2026-10-14")

    async def test_second_run_same_day_creates_nothing(
        self, db_session: AsyncSession, employee: User
    ):
        await make_letter(db_session, employee, NOW + timedelta(days=1))

        first = await run_deadline_check(db_session, now=NOW)
        second = await run_deadline_check(db_session, now=NOW + timedelta(hours=3))

        assert first.urgent == 1
        assert second.checked == 1
        assert second.urgent == 1
        assert len(await notifications_of(db_session, employee)) == 1

    async def test_escalation_to_managers_and_admins(
        self,
        db_session: AsyncSession,
        employee: User,
        admin_manager: list,
    ):
        await make_letter(db_session, employee, NOW - timedelta(days=5))

        result = await run_deadline_check(db_session, now=NOW)

        assert result.overdue == 1
        assert result.escalations == 1
        for user in admin_manager:
            notifications = await notifications_of(db_session, user)
            assert len(notifications) == 1
            assert notifications[0].title.startswith("Эскалация")
            assert notifications[0].meta["level"] == "escalation"

    async def test_deleted_letters_ignored(self, db_session: AsyncSession, employee: User):
        letter = await make_letter(db_session, employee, NOW - timedelta(days=1))
        letter.deleted_at = NOW
        await db_session.commit()

        result = await run_deadline_check(db_session, now=NOW)
        assert result.checked == 0

    async def test_ownerless_letter_notifies_nobody(
        self, db_session: AsyncSession, manager: User
    ):
        db_session.add(NotificationSubscription(user_id=manager.id, event="ALL", scope="ALL"))
        await db_session.commit()
        await make_letter(db_session, None, NOW - timedelta(days=1))

        result = await run_deadline_check(db_session, now=NOW)

        assert result.overdue == 1
        assert await notifications_of(db_session, manager) == []
