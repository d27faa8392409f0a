"""
Notification settings: defaults, validation and quiet hours.

A user's effective settings come either from the stored
NotificationPreference document or, when absent, from the flat
preference flags on the User row.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    DigestFrequency,
    NotificationEvent,
    NotificationPriority,
    Role,
)
from app.models.notification import NotificationSubscription
from app.models.notification_preference import NotificationPreference
from app.models.user import User

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")

QUIET_HOURS_MISMATCH = "Quiet hours start and end must differ"

MatrixPriority = Literal["low", "normal", "high", "critical"]

# Matrix priority -> stored notification priority
PRIORITY_MAP = {
    "low": NotificationPriority.LOW,
    "normal": NotificationPriority.NORMAL,
    "high": NotificationPriority.HIGH,
    "critical": NotificationPriority.CRITICAL,
}

# email_digest setting -> stored digest frequency
DIGEST_FREQUENCY_MAP = {
    "daily": DigestFrequency.DAILY,
    "weekly": DigestFrequency.WEEKLY,
}


class MatrixChannels(BaseModel):
    """Channels enabled for one event."""

    model_config = ConfigDict(extra="forbid")

    in_app: bool = False
    email: bool = False
    telegram: bool = False
    sms: bool = False
    push: bool = False

    @model_validator(mode="after")
    def at_least_one_channel(self) -> "MatrixChannels":
        if not any((self.in_app, self.email, self.telegram, self.sms, self.push)):
            raise ValueError("At least one notification channel must be enabled")
        return self


class MatrixItem(BaseModel):
    """Channels and priority for one event type."""

    model_config = ConfigDict(extra="forbid")

    event: NotificationEvent
    channels: MatrixChannels
    priority: MatrixPriority = "normal"


class Subscription(BaseModel):
    """Subscription entry stored inside the settings document."""

    model_config = ConfigDict(extra="forbid")

    event: str = "ALL"
    scope: Literal["role", "user", "all"]
    value: Optional[str] = None

    @field_validator("event")
    @classmethod
    def validate_event(cls, value: str) -> str:
        if value != "ALL" and value not in NotificationEvent.__members__:
            raise ValueError(f"Unknown event: {value}")
        return value


def _matrix_item(event, priority, in_app=True, email=False, telegram=False, sms=False):
    return MatrixItem(
        event=event,
        channels=MatrixChannels(in_app=in_app, email=email, telegram=telegram, sms=sms),
        priority=priority,
    )


DEFAULT_MATRIX: List[MatrixItem] = [
    _matrix_item(NotificationEvent.NEW_LETTER, "normal", email=True),
    _matrix_item(NotificationEvent.COMMENT, "normal", email=True),
    _matrix_item(NotificationEvent.STATUS, "normal"),
    _matrix_item(NotificationEvent.ASSIGNMENT, "high", email=True, telegram=True),
    _matrix_item(NotificationEvent.DEADLINE_URGENT, "high", email=True, telegram=True),
    _matrix_item(
        NotificationEvent.DEADLINE_OVERDUE, "critical", email=True, telegram=True, sms=True
    ),
    _matrix_item(NotificationEvent.SYSTEM, "low"),
]


class NotificationSettings(BaseModel):
    """Complete notification settings of a user."""

    model_config = ConfigDict(extra="forbid")

    # Channel toggles
    in_app_notifications: bool = True
    email_notifications: bool = True
    telegram_notifications: bool = False
    sms_notifications: bool = False
    push_notifications: bool = False

    email_digest: Literal["instant", "daily", "weekly", "never"] = "instant"
    sound_notifications: bool = True

    # Quiet hours
    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "08:00"
    quiet_mode: Literal["all", "important"] = "important"

    # Display
    group_similar: bool = True
    show_previews: bool = True
    show_organizations: bool = True

    # Event toggles
    notify_on_new_letter: bool = True
    notify_on_status_change: bool = True
    notify_on_comment: bool = True
    notify_on_assignment: bool = True
    notify_on_deadline: bool = True
    notify_on_system: bool = True

    matrix: List[MatrixItem] = Field(default_factory=lambda: list(DEFAULT_MATRIX))
    subscriptions: List[Subscription] = Field(default_factory=list)

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM format (00:00-23:59)")
        return value

    @field_validator("matrix")
    @classmethod
    def validate_matrix(cls, value: List[MatrixItem]) -> List[MatrixItem]:
        events = {item.event for item in value}
        missing = [event.value for event in NotificationEvent if event not in events]
        if missing:
            raise ValueError(f"Notification matrix is missing events: {missing}")
        return value

    @model_validator(mode="after")
    def validate_quiet_hours(self) -> "NotificationSettings":
        if self.quiet_hours_enabled and self.quiet_hours_start == self.quiet_hours_end:
            raise ValueError(QUIET_HOURS_MISMATCH)
        return self

    def matrix_item(self, event: NotificationEvent) -> Optional[MatrixItem]:
        """Matrix entry for event, falling back to the default matrix."""
        for item in self.matrix:
            if item.event == event:
                return item
        return DEFAULT_MATRIX_BY_EVENT.get(NotificationEvent(event))

    def is_event_enabled(self, event: NotificationEvent) -> bool:
        """Check the per-event toggle."""
        toggles = {
            NotificationEvent.NEW_LETTER: self.notify_on_new_letter,
            NotificationEvent.COMMENT: self.notify_on_comment,
            NotificationEvent.STATUS: self.notify_on_status_change,
            NotificationEvent.ASSIGNMENT: self.notify_on_assignment,
            NotificationEvent.DEADLINE_URGENT: self.notify_on_deadline,
            NotificationEvent.DEADLINE_OVERDUE: self.notify_on_deadline,
            NotificationEvent.SYSTEM: self.notify_on_system,
        }
        return toggles.get(NotificationEvent(event), True)


class NotificationSettingsUpdate(BaseModel):
    """Partial update of notification settings. Provided fields must be valid."""

    model_config = ConfigDict(extra="forbid")

    in_app_notifications: Optional[bool] = None
    email_notifications: Optional[bool] = None
    telegram_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    email_digest: Optional[Literal["instant", "daily", "weekly", "never"]] = None
    sound_notifications: Optional[bool] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    quiet_mode: Optional[Literal["all", "important"]] = None
    group_similar: Optional[bool] = None
    show_previews: Optional[bool] = None
    show_organizations: Optional[bool] = None
    notify_on_new_letter: Optional[bool] = None
    notify_on_status_change: Optional[bool] = None
    notify_on_comment: Optional[bool] = None
    notify_on_assignment: Optional[bool] = None
    notify_on_deadline: Optional[bool] = None
    notify_on_system: Optional[bool] = None
    matrix: Optional[List[MatrixItem]] = None
    subscriptions: Optional[List[Subscription]] = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM format (00:00-23:59)")
        return value

    @model_validator(mode="after")
    def validate_quiet_hours(self) -> "NotificationSettingsUpdate":
        if not self.quiet_hours_enabled:
            return self
        if not self.quiet_hours_start or not self.quiet_hours_end:
            return self
        if self.quiet_hours_start == self.quiet_hours_end:
            raise ValueError(QUIET_HOURS_MISMATCH)
        return self


DEFAULT_MATRIX_BY_EVENT = {item.event: item for item in DEFAULT_MATRIX}

DEFAULT_NOTIFICATION_SETTINGS = NotificationSettings()


def normalize_settings(data: Optional[Dict[str, Any]]) -> NotificationSettings:
    """
    Merge a partial settings document onto the defaults.

    Matrix entries are merged by event, so a stored matrix missing
    newer event types still yields a complete matrix.

    Raises:
        pydantic.ValidationError: If the merged document is invalid
    """
    if not data:
        return DEFAULT_NOTIFICATION_SETTINGS.model_copy(deep=True)

    merged = DEFAULT_NOTIFICATION_SETTINGS.model_dump(mode="json")
    merged.update({key: value for key, value in data.items() if value is not None})

    matrix = {item["event"]: item for item in merged_default_matrix()}
    for item in data.get("matrix") or []:
        item = item.model_dump(mode="json") if isinstance(item, MatrixItem) else item
        matrix[item["event"]] = item
    merged["matrix"] = list(matrix.values())

    subscriptions = []
    for subscription in data.get("subscriptions") or []:
        if isinstance(subscription, Subscription):
            subscription = subscription.model_dump()
        subscriptions.append({**subscription, "event": subscription.get("event") or "ALL"})
    merged["subscriptions"] = subscriptions

    return NotificationSettings.model_validate(merged)


def merged_default_matrix() -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json") for item in DEFAULT_MATRIX]


def settings_from_user(user: User) -> NotificationSettings:
    """Build settings from the flat preference flags of a user."""
    digest_frequency = user.digest_frequency
    if digest_frequency == DigestFrequency.DAILY:
        email_digest = "daily"
    elif digest_frequency == DigestFrequency.WEEKLY:
        email_digest = "weekly"
    else:
        email_digest = "instant"

    return normalize_settings(
        {
            "in_app_notifications": user.notify_in_app,
            "email_notifications": user.notify_email,
            "telegram_notifications": user.notify_telegram,
            "sms_notifications": user.notify_sms,
            "email_digest": email_digest,
            "quiet_hours_enabled": bool(user.quiet_hours_start and user.quiet_hours_end),
            "quiet_hours_start": user.quiet_hours_start
            or DEFAULT_NOTIFICATION_SETTINGS.quiet_hours_start,
            "quiet_hours_end": user.quiet_hours_end
            or DEFAULT_NOTIFICATION_SETTINGS.quiet_hours_end,
        }
    )


def resolve_user_settings(
    user: User, preference: Optional[NotificationPreference] = None
) -> NotificationSettings:
    """Effective settings of a user: stored document or flat flags."""
    if preference is not None and preference.settings:
        try:
            return normalize_settings(preference.settings)
        except ValidationError as e:
            logger.warning(f"Invalid stored notification settings for user {user.id}: {e}")

    try:
        return settings_from_user(user)
    except ValidationError as e:
        logger.warning(f"Invalid notification flags for user {user.id}: {e}")
        return DEFAULT_NOTIFICATION_SETTINGS.model_copy(deep=True)


async def get_preference(db: AsyncSession, user: User) -> Optional[NotificationPreference]:
    result = await db.execute(
        select(NotificationPreference).where(NotificationPreference.user_id == user.id)
    )
    return result.scalar_one_or_none()


async def get_user_settings(db: AsyncSession, user: User) -> NotificationSettings:
    """Load and resolve the settings of a user."""
    return resolve_user_settings(user, await get_preference(db, user))


def normalize_subscriptions(subscriptions: List[Subscription]) -> List[Subscription]:
    """
    Trim subscription values and drop entries that can never match.

    Role and user scopes need a value, and a role value must name a role.
    """
    normalized = []
    for subscription in subscriptions:
        value = (subscription.value or "").strip() or None
        if subscription.scope != "all":
            if not value:
                continue
            if subscription.scope == "role" and value not in Role.__members__:
                continue
        normalized.append(subscription.model_copy(update={"value": value}))
    return normalized


async def save_user_settings(
    db: AsyncSession, user: User, update: NotificationSettingsUpdate
) -> NotificationSettings:
    """
    Merge an update onto the user's settings and store it.

    The flat flags on User and the NotificationSubscription rows
    are kept in sync with the stored document.

    Raises:
        pydantic.ValidationError: If the merged settings are invalid
    """
    preference = await get_preference(db, user)
    current = resolve_user_settings(user, preference)

    data = current.model_dump(mode="json")
    data.update(update.model_dump(mode="json", exclude_unset=True, exclude_none=True))
    merged = normalize_settings(data)
    merged.subscriptions = normalize_subscriptions(merged.subscriptions)

    if preference is None:
        preference = NotificationPreference(user_id=user.id)
        db.add(preference)
    preference.settings = merged.model_dump(mode="json")

    user.notify_in_app = merged.in_app_notifications
    user.notify_email = merged.email_notifications
    user.notify_telegram = merged.telegram_notifications
    user.notify_sms = merged.sms_notifications
    user.quiet_hours_start = merged.quiet_hours_start if merged.quiet_hours_enabled else None
    user.quiet_hours_end = merged.quiet_hours_end if merged.quiet_hours_enabled else None
    user.digest_frequency = DIGEST_FREQUENCY_MAP.get(merged.email_digest, DigestFrequency.NONE)

    await db.execute(
        delete(NotificationSubscription).where(NotificationSubscription.user_id == user.id)
    )
    for subscription in merged.subscriptions:
        db.add(
            NotificationSubscription(
                user_id=user.id,
                event=subscription.event,
                scope=subscription.scope.upper(),
                value=subscription.value,
            )
        )

    await db.commit()
    logger.info(f"Notification settings saved for user {user.id}")
    return merged


def _parse_time(value: str) -> Optional[int]:
    try:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        return None


def is_within_quiet_hours(now: datetime, start: str, end: str) -> bool:
    """
    Check whether now falls inside the quiet hours window.

    start == end means the whole day is quiet. A window whose start
    is after its end wraps midnight.
    """
    start_minutes = _parse_time(start)
    end_minutes = _parse_time(end)
    if start_minutes is None or end_minutes is None:
        return False

    current = now.hour * 60 + now.minute
    if start_minutes == end_minutes:
        return True
    if start_minutes < end_minutes:
        return start_minutes <= current < end_minutes
    return current >= start_minutes or current < end_minutes
