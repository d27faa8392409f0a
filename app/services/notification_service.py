"""
Notification dispatch service that orchestrates all notification channels.

Handles:
- Resolving recipients (explicit users plus subscriptions)
- Deduplicating repeat notifications within a time window
- Persisting one in-app Notification per recipient
- Fanning out to email, Telegram and SMS according to user settings
- Recording a NotificationDelivery row per channel
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models.enums import (
    ChannelType,
    DeliveryStatus,
    NotificationEvent,
    NotificationPriority,
    SubscriptionScope,
)
from app.models.notification import (
    Notification,
    NotificationDelivery,
    NotificationSubscription,
)
from app.models.user import User
from app.services.notification_settings import (
    PRIORITY_MAP,
    NotificationSettings,
    is_within_quiet_hours,
    resolve_user_settings,
)
from app.services.notifications.base import (
    ChannelMessage,
    NotificationChannel,
    NotificationResult,
)
from app.services.notifications.email import get_email_channel
from app.services.notifications.sms import get_sms_channel
from app.services.notifications.telegram import get_telegram_channel

logger = logging.getLogger(__name__)
settings = get_settings()

DEADLINE_EVENTS = {NotificationEvent.DEADLINE_URGENT, NotificationEvent.DEADLINE_OVERDUE}


@dataclass
class DispatchSummary:
    """Summary of a dispatch across all recipients."""
    event: str
    recipients: int = 0
    created: List[uuid.UUID] = field(default_factory=list)
    deduplicated: List[uuid.UUID] = field(default_factory=list)
    skipped: List[uuid.UUID] = field(default_factory=list)
    deliveries: Dict[str, int] = field(default_factory=dict)

    @property
    def created_count(self) -> int:
        return len(self.created)


def build_dedupe_key(
    event: NotificationEvent,
    letter_id: Optional[uuid.UUID],
    actor_id: Optional[uuid.UUID],
) -> str:
    """Default dedupe key: event, letter and actor."""
    return ":".join(
        [
            NotificationEvent(event).value,
            str(letter_id) if letter_id else "none",
            str(actor_id) if actor_id else "system",
        ]
    )


def is_important_event(event: NotificationEvent, priority: NotificationPriority) -> bool:
    """Deadline events and high priorities bypass quiet hours in 'important' mode."""
    if event in DEADLINE_EVENTS:
        return True
    return priority in (NotificationPriority.HIGH, NotificationPriority.CRITICAL)


class NotificationService:
    """
    Service for dispatching notifications to staff users.

    External channel sends are best-effort: failures are logged and
    recorded as FAILED deliveries, never raised to the caller.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the service and notification channels.

        Args:
            db: Database session
        """
        self.db = db
        self._email = get_email_channel()
        self._telegram = get_telegram_channel()
        self._sms = get_sms_channel()

    async def resolve_subscriptions(
        self,
        event: NotificationEvent,
        actor_id: Optional[uuid.UUID] = None,
    ) -> List[uuid.UUID]:
        """
        Find users subscribed to an event.

        ROLE and USER scoped subscriptions match against the actor,
        so they never match system (actor-less) events.

        Args:
            event: Event being dispatched
            actor_id: User who caused the event

        Returns:
            List of subscriber user IDs
        """
        result = await self.db.execute(
            select(NotificationSubscription).where(
                or_(
                    NotificationSubscription.event == "ALL",
                    NotificationSubscription.event == NotificationEvent(event).value,
                )
            )
        )
        subscriptions = result.scalars().all()
        if not subscriptions:
            return []

        actor: Optional[User] = None
        if actor_id:
            actor = await self.db.get(User, actor_id)

        user_ids = []
        for subscription in subscriptions:
            scope = subscription.scope.upper()
            if scope == SubscriptionScope.ALL.value:
                user_ids.append(subscription.user_id)
            elif actor is None:
                continue
            elif scope == SubscriptionScope.ROLE.value and subscription.value == actor.role:
                user_ids.append(subscription.user_id)
            elif scope == SubscriptionScope.USER.value and subscription.value == str(actor.id):
                user_ids.append(subscription.user_id)

        return user_ids

    async def is_duplicate(
        self, user_id: uuid.UUID, dedupe_key: str, since: datetime
    ) -> bool:
        """Check for a notification with the same key created since a moment."""
        result = await self.db.execute(
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.dedupe_key == dedupe_key,
                Notification.created_at >= since,
            )
            .limit(1)
        )
        return result.first() is not None

    def _channel_flags(
        self, user_settings: NotificationSettings, event: NotificationEvent
    ) -> Optional[Dict[ChannelType, bool]]:
        matrix_item = user_settings.matrix_item(event)
        if matrix_item is None:
            return None
        channels = matrix_item.channels
        return {
            ChannelType.IN_APP: user_settings.in_app_notifications and channels.in_app,
            ChannelType.EMAIL: user_settings.email_notifications and channels.email,
            ChannelType.TELEGRAM: user_settings.telegram_notifications and channels.telegram,
            ChannelType.SMS: user_settings.sms_notifications and channels.sms,
            ChannelType.PUSH: user_settings.push_notifications and channels.push,
        }

    def _add_delivery(
        self,
        notification: Notification,
        user: User,
        channel: ChannelType,
        status: DeliveryStatus,
        recipient: Optional[str] = None,
        error: Optional[str] = None,
    ) -> NotificationDelivery:
        delivery = NotificationDelivery(
            notification_id=notification.id,
            user_id=user.id,
            channel=channel,
            status=status,
            recipient=recipient,
            error=error,
            sent_at=datetime.now(timezone.utc) if status == DeliveryStatus.SENT else None,
        )
        self.db.add(delivery)
        return delivery

    async def _send(
        self, channel: NotificationChannel, recipient: str, message: ChannelMessage
    ) -> bool:
        try:
            result = await channel.send(recipient, message)
        except Exception as e:
            logger.error(f"Error sending via {channel.channel_name}: {e}")
            return False

        if not result.success:
            logger.warning(f"Failed to send via {channel.channel_name}: {result.error}")
        return result.success

    async def _deliver_external(
        self,
        notification: Notification,
        user: User,
        channel_type: ChannelType,
        channel: NotificationChannel,
        recipient: Optional[str],
        missing_error: str,
        message: ChannelMessage,
        muted: bool,
    ) -> DeliveryStatus:
        if muted:
            status, error = DeliveryStatus.SKIPPED, "quiet_hours"
        elif not recipient:
            status, error = DeliveryStatus.SKIPPED, missing_error
        else:
            success = await self._send(channel, recipient, message)
            status = DeliveryStatus.SENT if success else DeliveryStatus.FAILED
            error = None if success else "send_failed"

        self._add_delivery(notification, user, channel_type, status, recipient, error)
        return status

    async def dispatch(
        self,
        event: NotificationEvent,
        title: str,
        body: Optional[str] = None,
        letter_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        user_ids: Optional[Iterable[Optional[uuid.UUID]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        dedupe_key: Optional[str] = None,
        dedupe_window_minutes: Optional[int] = None,
        include_subscriptions: bool = True,
        now: Optional[datetime] = None,
    ) -> DispatchSummary:
        """
        Dispatch a notification to explicit users and subscribers.

        Steps:
        1. Resolve recipients (explicit users + subscriptions)
        2. Per recipient: check event toggle, dedupe window and channels
        3. Persist one Notification row
        4. Deliver through in-app, email, Telegram and SMS
        5. Commit and return a summary

        Args:
            event: Event type
            title: Notification title
            body: Optional body text
            letter_id: Letter the notification is about
            actor_id: User who caused the event, None for system events
            user_ids: Explicit recipients
            metadata: Extra data stored on the notification
            dedupe_key: Key suppressing repeats (default: event/letter/actor)
            dedupe_window_minutes: Dedupe window, 0 disables the check
            include_subscriptions: Add subscribed users to the recipients
            now: Current time (for tests)

        Returns:
            DispatchSummary with created and skipped recipients
        """
        event = NotificationEvent(event)
        summary = DispatchSummary(event=event.value)

        recipients: Dict[uuid.UUID, None] = {}
        for user_id in user_ids or []:
            if user_id:
                recipients[user_id] = None

        if include_subscriptions:
            for user_id in await self.resolve_subscriptions(event, actor_id):
                recipients[user_id] = None

        if not recipients:
            return summary

        result = await self.db.execute(
            select(User)
            .where(User.id.in_(list(recipients)))
            .options(
                selectinload(User.profile),
                selectinload(User.notification_preference),
            )
        )
        users = result.scalars().all()
        summary.recipients = len(users)

        now = now or datetime.now(timezone.utc)
        local_now = now.astimezone(ZoneInfo(settings.timezone))
        if dedupe_window_minutes is None:
            dedupe_window_minutes = settings.notification_dedupe_window_minutes
        dedupe_since = (
            now - timedelta(minutes=dedupe_window_minutes)
            if dedupe_window_minutes > 0
            else None
        )
        key = dedupe_key or build_dedupe_key(event, letter_id, actor_id)
        message = ChannelMessage.from_parts(
            title,
            body,
            link=f"{settings.dashboard_url}/letters/{letter_id}" if letter_id else None,
        )

        for user in users:
            user_settings = resolve_user_settings(user, user.notification_preference)

            if not user_settings.is_event_enabled(event):
                summary.skipped.append(user.id)
                continue

            flags = self._channel_flags(user_settings, event)
            if flags is None:
                summary.skipped.append(user.id)
                continue

            if dedupe_since and await self.is_duplicate(user.id, key, dedupe_since):
                logger.info(f"Skipping duplicate notification {key} for user {user.id}")
                summary.deduplicated.append(user.id)
                continue

            if not any(flags.values()):
                summary.skipped.append(user.id)
                continue

            matrix_item = user_settings.matrix_item(event)
            priority = PRIORITY_MAP.get(matrix_item.priority, NotificationPriority.NORMAL)

            notification = Notification(
                id=uuid.uuid4(),
                user_id=user.id,
                letter_id=letter_id,
                actor_id=actor_id,
                type=event,
                title=title,
                body=body or None,
                priority=priority,
                dedupe_key=key,
                meta=metadata,
                created_at=now,
            )
            self.db.add(notification)
            await self.db.flush()
            summary.created.append(notification.id)

            quiet_hours_active = user_settings.quiet_hours_enabled and is_within_quiet_hours(
                local_now,
                user_settings.quiet_hours_start,
                user_settings.quiet_hours_end,
            )
            muted = (
                quiet_hours_active
                and user_settings.quiet_mode == "important"
                and not is_important_event(event, priority)
            )

            statuses: List[DeliveryStatus] = []

            if flags[ChannelType.IN_APP]:
                self._add_delivery(
                    notification, user, ChannelType.IN_APP, DeliveryStatus.SENT, str(user.id)
                )
                statuses.append(DeliveryStatus.SENT)

            if flags[ChannelType.EMAIL]:
                statuses.append(
                    await self._deliver_external(
                        notification, user, ChannelType.EMAIL, self._email,
                        user.email, "missing_email", message, muted,
                    )
                )

            if flags[ChannelType.TELEGRAM]:
                statuses.append(
                    await self._deliver_external(
                        notification, user, ChannelType.TELEGRAM, self._telegram,
                        user.telegram_chat_id, "missing_telegram", message, muted,
                    )
                )

            if flags[ChannelType.SMS]:
                phone = user.profile.phone if user.profile else None
                statuses.append(
                    await self._deliver_external(
                        notification, user, ChannelType.SMS, self._sms,
                        phone, "missing_phone", message, muted,
                    )
                )

            if flags[ChannelType.PUSH]:
                self._add_delivery(
                    notification, user, ChannelType.PUSH, DeliveryStatus.SKIPPED,
                    error="push_not_supported",
                )
                statuses.append(DeliveryStatus.SKIPPED)

            for status in statuses:
                summary.deliveries[status.value] = summary.deliveries.get(status.value, 0) + 1

        await self.db.commit()

        logger.info(
            f"Dispatched {event.value}: {summary.created_count} created, "
            f"{len(summary.deduplicated)} deduplicated, {len(summary.skipped)} skipped"
        )
        return summary

    async def send_direct(
        self,
        message: ChannelMessage,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        telegram_chat_id: Optional[str] = None,
    ) -> Dict[str, bool]:
        """
        Send a message straight to contact addresses, without an in-app record.

        Used for applicants, who have no user account. Missing
        addresses are skipped.

        Returns:
            Dict of channel name to success flag
        """
        results = {"telegram": False, "email": False, "sms": False}

        if telegram_chat_id:
            results["telegram"] = await self._send(self._telegram, telegram_chat_id, message)
        if email:
            results["email"] = await self._send(self._email, email, message)
        if phone:
            results["sms"] = await self._send(self._sms, phone, message)

        return results

    async def send_email(self, recipient: str, message: ChannelMessage) -> NotificationResult:
        """Send a single email, catching channel errors."""
        try:
            return await self._email.send(recipient, message)
        except Exception as e:
            logger.error(f"Error sending email to {recipient}: {e}")
            return NotificationResult(success=False, channel="email", error=str(e))
