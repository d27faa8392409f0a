"""
Email digests of recent notifications.

Users with a DAILY or WEEKLY digest frequency receive one email
summarising their notifications of the period, grouped by letter.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models.base import as_utc
from app.models.enums import DigestFrequency
from app.models.notification import Notification
from app.models.user import User
from app.services.notification_service import NotificationService
from app.services.notifications.base import ChannelMessage

logger = logging.getLogger(__name__)
settings = get_settings()

DIGEST_PERIOD_DAYS = {
    DigestFrequency.DAILY: 1,
    DigestFrequency.WEEKLY: 7,
}

PREVIEW_LENGTH = 150


@dataclass
class DigestResult:
    """Outcome of a digest run."""
    users: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def build_digest_message(
    notifications: List[Notification], frequency: DigestFrequency
) -> ChannelMessage:
    """Render notifications as a digest message grouped by letter."""
    period = "за вчера" if frequency == DigestFrequency.DAILY else "за последнюю неделю"

    groups = OrderedDict()
    for notification in notifications:
        key = notification.letter_id or "general"
        groups.setdefault(key, []).append(notification)

    lines = [f"У вас {len(notifications)} новых уведомлений."]
    for key, items in groups.items():
        lines.append("")
        letter = items[0].letter
        if key == "general" or letter is None:
            lines.append("Общие уведомления")
        else:
            lines.append(f"Письмо №{letter.number} - {letter.org}")

        for notification in items:
            created = as_utc(notification.created_at).strftime("%d.%m.%Y %H:%M")
            lines.append(f"- {notification.title} ({created})")
            if notification.body:
                preview = notification.body
                if len(preview) > PREVIEW_LENGTH:
                    preview = preview[:PREVIEW_LENGTH] + "..."
                lines.append(f"  {preview}")

    return ChannelMessage.from_parts(
        f"Дайджест уведомлений {period}",
        "\n".join(lines),
        link=f"{settings.dashboard_url}/notifications",
    )


async def send_digests(
    db: AsyncSession,
    frequency: DigestFrequency,
    now: Optional[datetime] = None,
) -> DigestResult:
    """
    Email a digest to every user subscribed to this frequency.

    Users without notifications in the period are skipped.
    """
    frequency = DigestFrequency(frequency)
    if frequency not in DIGEST_PERIOD_DAYS:
        raise ValueError("Invalid digest type")

    now = as_utc(now or datetime.now(timezone.utc))
    since = now - timedelta(days=DIGEST_PERIOD_DAYS[frequency])

    result = await db.execute(
        select(User).where(
            User.digest_frequency == frequency.value,
            User.notify_email.is_(True),
            User.email.is_not(None),
        )
    )
    users = result.scalars().all()

    service = NotificationService(db)
    digest = DigestResult(users=len(users))

    for user in users:
        notifications_result = await db.execute(
            select(Notification)
            .where(Notification.user_id == user.id, Notification.created_at >= since)
            .options(selectinload(Notification.letter))
            .order_by(Notification.created_at.desc())
        )
        notifications = notifications_result.scalars().all()
        if not notifications:
            digest.skipped += 1
            continue

        sent = await service.send_email(user.email, build_digest_message(notifications, frequency))
        if sent.success:
            digest.sent += 1
        else:
            digest.failed += 1

    logger.info(
        f"{frequency.value} digest: {digest.sent} sent, {digest.failed} failed, "
        f"{digest.skipped} skipped of {digest.users} users"
    )
    return digest
