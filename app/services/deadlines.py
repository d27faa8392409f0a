"""
Letter deadline check.

Finds open letters whose deadline is near or past, notifies their
owners once per day and escalates long-overdue letters to managers.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.base import as_utc
from app.models.enums import DONE_STATUSES, NotificationEvent, Role
from app.models.letter import Letter
from app.models.user import User
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)
settings = get_settings()

ESCALATION_ROLES = (Role.MANAGER, Role.ADMIN)


@dataclass
class DeadlineCheckResult:
    """Letter counts of a deadline check."""
    checked: int = 0
    urgent: int = 0
    overdue: int = 0
    escalations: int = 0


def days_until_deadline(deadline: datetime, now: Optional[datetime] = None) -> int:
    """
    Calendar days from today to the deadline date, in UTC.

    Negative when the deadline has passed.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    return (as_utc(deadline).date() - now.date()).days


def deadline_level(days_left: int) -> str:
    """Severity level stored in notification metadata."""
    if days_left >= 0:
        return "urgent"
    if -days_left >= settings.sla_escalation_days:
        return "overdue"
    return "late"


def format_date(value: datetime) -> str:
    return as_utc(value).strftime("%d.%m.%Y")


def build_deadline_message(letter: Letter, days_left: int) -> tuple:
    """Title and body of an owner deadline notification."""
    if days_left < 0:
        title = f"Просрочен дедлайн по письму №-{letter.number}"
        tail = f"Просрочка: {-days_left} дн."
    else:
        title = f"Срочный дедлайн по письму №-{letter.number}"
        tail = f"Осталось: {days_left} дн."

    body = "\n".join(
        [
            f"Организация: {letter.org}",
            f"Дедлайн: {format_date(letter.deadline_date)}",
            tail,
        ]
    )
    return title, body


async def get_escalation_recipients(db: AsyncSession) -> list:
    result = await db.execute(
        select(User.id).where(
            User.role.in_([role.value for role in ESCALATION_ROLES]),
            User.can_login.is_(True),
        )
    )
    return list(result.scalars().all())


async def run_deadline_check(
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> DeadlineCheckResult:
    """
    Notify about urgent and overdue letter deadlines.

    Each letter produces at most one owner notification and one
    escalation per calendar day.

    Args:
        db: Database session
        now: Current time (for tests)

    Returns:
        DeadlineCheckResult with urgent, overdue and escalated letter counts
    """
    now = as_utc(now or datetime.now(timezone.utc))
    horizon = now + timedelta(days=settings.urgent_days)
    today = now.strftime("%Y-%m-%d")

    result = await db.execute(
        select(Letter)
        .where(
            Letter.deleted_at.is_(None),
            Letter.deadline_date.is_not(None),
            Letter.deadline_date <= horizon,
            Letter.status.not_in([status.value for status in DONE_STATUSES]),
        )
        .order_by(Letter.deadline_date.asc())
    )
    letters = result.scalars().all()

    service = NotificationService(db)
    check = DeadlineCheckResult(checked=len(letters))
    escalation_recipients = None

    for letter in letters:
        days_left = days_until_deadline(letter.deadline_date, now)
        if days_left > settings.urgent_days:
            continue

        event = (
            NotificationEvent.DEADLINE_OVERDUE
            if days_left < 0
            else NotificationEvent.DEADLINE_URGENT
        )
        title, body = build_deadline_message(letter, days_left)

        if letter.owner_id:
            await service.dispatch(
                event=event,
                title=title,
                body=body,
                letter_id=letter.id,
                user_ids=[letter.owner_id],
                metadata={
                    "level": deadline_level(days_left),
                    "days_left": days_left,
                    "deadline": as_utc(letter.deadline_date).isoformat(),
                },
                dedupe_key=f"SLA:{event.value}:{letter.id}:{today}",
                dedupe_window_minutes=settings.sla_repeat_minutes,
                now=now,
            )

        if event == NotificationEvent.DEADLINE_URGENT:
            check.urgent += 1
            continue

        check.overdue += 1
        if -days_left >= settings.sla_escalation_days:
            if escalation_recipients is None:
                escalation_recipients = await get_escalation_recipients(db)
            if not escalation_recipients:
                continue

            await service.dispatch(
                event=NotificationEvent.DEADLINE_OVERDUE,
                title=f"Эскалация: просрочено письмо №-{letter.number}",
                body=body,
                letter_id=letter.id,
                user_ids=escalation_recipients,
                metadata={"level": "escalation", "days_left": days_left},
                dedupe_key=f"SLA:ESCALATION:{letter.id}:{today}",
                dedupe_window_minutes=settings.sla_repeat_minutes,
                include_subscriptions=False,
                now=now,
            )
            check.escalations += 1

    logger.info(
        f"Deadline check: {check.checked} letters, {check.urgent} urgent, "
        f"{check.overdue} overdue, {check.escalations} escalations"
    )
    return check
