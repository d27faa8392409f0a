"""Tests for notification dispatch service."""
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    ChannelType,
    DeliveryStatus,
    NotificationEvent,
    NotificationPriority,
)
from app.models.letter import Letter
from app.models.notification import (
    Notification,
    NotificationDelivery,
    NotificationSubscription,
)
from app.models.user import User
from app.services.notification_service import (
    NotificationService,
    build_dedupe_key,
    is_important_event,
)
from app.services.notification_settings import (
    NotificationSettingsUpdate,
    save_user_settings,
)
from app.services.notifications.base import ChannelMessage, NotificationResult

# 12:00 in Tashkent (UTC+5)
NOON = datetime(2026, 10, 14, 7, 0, tzinfo=timezone.utc)
# 23:30 in Tashkent
NIGHT = datetime(2026, 10, 14, 18, 30, tzinfo=timezone.utc)


async def deliveries_for(db_session: AsyncSession, user: User) -> dict:
    result = await db_session.execute(
        select(NotificationDelivery).where(NotificationDelivery.user_id == user.id)
    )
    return {d.channel: d for d in result.scalars().all()}


async def notifications_for(db_session: AsyncSession, user: User) -> list:
    result = await db_session.execute(
        select(Notification).where(Notification.user_id == user.id)
    )
    return list(result.scalars().all())


class TestHelpers:
    """Tests for dedupe key and importance helpers."""

    def test_build_dedupe_key(self):
        letter_id = uuid.uuid4()
        actor_id = uuid.uuid4()
        assert (
            build_dedupe_key(NotificationEvent.COMMENT, letter_id, actor_id)
            == f"COMMENT:{letter_id}:{actor_id}"
        )
        assert build_dedupe_key(NotificationEvent.SYSTEM, None, None) == "SYSTEM:none:system"

    def test_is_important_event(self):
        assert is_important_event(NotificationEvent.DEADLINE_URGENT, NotificationPriority.LOW)
        assert is_important_event(NotificationEvent.STATUS, NotificationPriority.HIGH)
        assert not is_important_event(NotificationEvent.STATUS, NotificationPriority.NORMAL)


class TestDispatch:
    """Tests for NotificationService.dispatch."""

    async def test_in_app_and_email(
        self,
        db_session: AsyncSession,
        employee: User,
        letter: Letter,
        mock_channels: dict,
    ):
        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title="New letter",
            body="Ministry of Health",
            letter_id=letter.id,
            user_ids=[employee.id],
            now=NOON,
        )

        assert summary.created_count == 1
        assert summary.deliveries == {"SENT": 2}

        notification = (await notifications_for(db_session, employee))[0]
        assert notification.priority == NotificationPriority.NORMAL.value
        assert notification.dedupe_key == f"NEW_LETTER:{letter.id}:system"

        deliveries = await deliveries_for(db_session, employee)
        assert set(deliveries) == {ChannelType.IN_APP.value, ChannelType.EMAIL.value}
        assert deliveries[ChannelType.IN_APP.value].recipient == str(employee.id)

        recipient, message = mock_channels["email"].send.call_args.args
        assert recipient == employee.email
        assert message.title == "New letter"
        assert message.link.endswith(f"/letters/{letter.id}")

    async def test_duplicate_within_window_is_skipped(
        self, db_session: AsyncSession, employee: User, mock_channels: dict
    ):
        service = NotificationService(db_session)
        first = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Backup finished",
            user_ids=[employee.id],
            now=NOON,
        )
        second = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Backup finished",
            user_ids=[employee.id],
            now=NOON + timedelta(minutes=5),
        )

        assert first.created_count == 1
        assert second.created_count == 0
        assert second.deduplicated == [employee.id]
        assert len(await notifications_for(db_session, employee)) == 1

    async def test_duplicate_after_window_is_sent(
        self, db_session: AsyncSession, employee: User
    ):
        service = NotificationService(db_session)
        await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Backup finished",
            user_ids=[employee.id],
            now=NOON,
        )
        later = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Backup finished",
            user_ids=[employee.id],
            now=NOON + timedelta(minutes=11),
        )
        assert later.created_count == 1

    async def test_zero_window_disables_dedupe(
        self, db_session: AsyncSession, employee: User
    ):
        service = NotificationService(db_session)
        for _ in range(2):
            summary = await service.dispatch(
                event=NotificationEvent.SYSTEM,
                title="Ping",
                user_ids=[employee.id],
                dedupe_window_minutes=0,
                now=NOON,
            )
            assert summary.created_count == 1

    async def test_quiet_hours_skip_external_channels(
        self,
        db_session: AsyncSession,
        employee: User,
        mock_channels: dict,
    ):
        await save_user_settings(
            db_session,
            employee,
            NotificationSettingsUpdate(
                quiet_hours_enabled=True,
                quiet_hours_start="22:00",
                quiet_hours_end="08:00",
                quiet_mode="all",
            ),
        )

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title="Night letter",
            user_ids=[employee.id],
            now=NIGHT,
        )

        assert summary.created_count == 1
        deliveries = await deliveries_for(db_session, employee)
        assert deliveries[ChannelType.IN_APP.value].status == DeliveryStatus.SENT.value
        assert deliveries[ChannelType.EMAIL.value].status == DeliveryStatus.SKIPPED.value
        assert deliveries[ChannelType.EMAIL.value].error == "quiet_hours"
        mock_channels["email"].send.assert_not_awaited()

    async def test_important_mode_lets_deadlines_through(
        self,
        db_session: AsyncSession,
        employee: User,
        mock_channels: dict,
    ):
        await save_user_settings(
            db_session,
            employee,
            NotificationSettingsUpdate(
                quiet_hours_enabled=True,
                quiet_hours_start="22:00",
                quiet_hours_end="08:00",
                quiet_mode="important",
            ),
        )

        service = NotificationService(db_session)
        await service.dispatch(
            event=NotificationEvent.DEADLINE_URGENT,
            title="Deadline tomorrow",
            user_ids=[employee.id],
            now=NIGHT,
        )

        deliveries = await deliveries_for(db_session, employee)
        assert deliveries[ChannelType.EMAIL.value].status == DeliveryStatus.SENT.value
        mock_channels["email"].send.assert_awaited_once()

    async def test_missing_addresses_are_skipped(
        self, db_session: AsyncSession, employee: User, mock_channels: dict
    ):
        employee.email = None
        employee.notify_telegram = True
        employee.notify_sms = True
        await db_session.commit()

        service = NotificationService(db_session)
        await service.dispatch(
            event=NotificationEvent.DEADLINE_OVERDUE,
            title="Overdue",
            user_ids=[employee.id],
            now=NOON,
        )

        deliveries = await deliveries_for(db_session, employee)
        assert deliveries[ChannelType.EMAIL.value].error == "missing_email"
        assert deliveries[ChannelType.TELEGRAM.value].error == "missing_telegram"
        assert deliveries[ChannelType.SMS.value].error == "missing_phone"
        assert all(
            deliveries[channel].status == DeliveryStatus.SKIPPED.value
            for channel in ("EMAIL", "TELEGRAM", "SMS")
        )
        mock_channels["email"].send.assert_not_awaited()

    async def test_all_channels_for_manager(
        self, db_session: AsyncSession, manager: User, mock_channels: dict
    ):
        manager.notify_telegram = True
        manager.notify_sms = True
        await db_session.commit()

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.DEADLINE_OVERDUE,
            title="Overdue",
            user_ids=[manager.id],
            now=NOON,
        )

        assert summary.deliveries == {"SENT": 4}
        assert mock_channels["telegram"].send.call_args.args[0] == "555000"
        assert mock_channels["sms"].send.call_args.args[0] == "+998900000000"

    async def test_send_failure_keeps_in_app(
        self, db_session: AsyncSession, employee: User, mock_channels: dict
    ):
        mock_channels["email"].send.side_effect = RuntimeError("SendGrid down")

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title="New letter",
            user_ids=[employee.id],
            now=NOON,
        )

        assert summary.created_count == 1
        deliveries = await deliveries_for(db_session, employee)
        assert deliveries[ChannelType.IN_APP.value].status == DeliveryStatus.SENT.value
        assert deliveries[ChannelType.EMAIL.value].status == DeliveryStatus.FAILED.value
        assert deliveries[ChannelType.EMAIL.value].error == "send_failed"

    async def test_unsuccessful_result_is_failed(
        self, db_session: AsyncSession, employee: User, mock_channels: dict
    ):
        mock_channels["email"].send.return_value = NotificationResult(
            success=False, channel="email", error="rejected"
        )

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title="New letter",
            user_ids=[employee.id],
            now=NOON,
        )
        assert summary.deliveries == {"SENT": 1, "FAILED": 1}

    async def test_disabled_event_toggle(
        self, db_session: AsyncSession, employee: User
    ):
        await save_user_settings(
            db_session, employee, NotificationSettingsUpdate(notify_on_system=False)
        )

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Maintenance",
            user_ids=[employee.id],
            now=NOON,
        )
        assert summary.created_count == 0
        assert summary.skipped == [employee.id]

    async def test_no_recipients(self, db_session: AsyncSession):
        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="Nobody listens",
            user_ids=[None],
        )
        assert summary.recipients == 0
        assert summary.created_count == 0


class TestSubscriptions:
    """Tests for subscription resolution."""

    async def test_all_scope(
        self, db_session: AsyncSession, employee: User, manager: User
    ):
        db_session.add(
            NotificationSubscription(
                user_id=manager.id, event="NEW_LETTER", scope="ALL"
            )
        )
        await db_session.commit()

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title="New letter",
            actor_id=employee.id,
            now=NOON,
        )
        assert summary.created_count == 1
        assert len(await notifications_for(db_session, manager)) == 1

    async def test_role_and_user_scopes_match_actor(
        self,
        db_session: AsyncSession,
        admin: User,
        employee: User,
        manager: User,
    ):
        db_session.add_all(
            [
                NotificationSubscription(
                    user_id=manager.id, event="ALL", scope="ROLE", value="EMPLOYEE"
                ),
                NotificationSubscription(
                    user_id=admin.id, event="COMMENT", scope="USER", value=str(employee.id)
                ),
            ]
        )
        await db_session.commit()

        service = NotificationService(db_session)
        assert set(
            await service.resolve_subscriptions(NotificationEvent.COMMENT, employee.id)
        ) == {manager.id, admin.id}
        assert await service.resolve_subscriptions(
            NotificationEvent.STATUS, admin.id
        ) == []
        assert await service.resolve_subscriptions(NotificationEvent.COMMENT) == []

    async def test_excluded_when_not_included(
        self, db_session: AsyncSession, manager: User
    ):
        db_session.add(NotificationSubscription(user_id=manager.id, event="ALL", scope="ALL"))
        await db_session.commit()

        service = NotificationService(db_session)
        summary = await service.dispatch(
            event=NotificationEvent.SYSTEM,
            title="System",
            include_subscriptions=False,
        )
        assert summary.recipients == 0


class TestSendDirect:
    """Tests for NotificationService.send_direct."""

    async def test_send_direct(self, db_session: AsyncSession, mock_channels: dict):
        mock_channels["sms"].send.side_effect = RuntimeError("Twilio down")

        service = NotificationService(db_session)
        results = await service.send_direct(
            ChannelMessage.from_parts("Status changed", "Letter 101/A"),
            email="applicant@example.com",
            phone="+998911111111",
        )

        assert results == {"telegram": False, "email": True, "sms": False}
        mock_channels["telegram"].send.assert_not_awaited()
