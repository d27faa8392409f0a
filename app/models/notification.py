"""
In-app notifications and their per-channel delivery records.
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, UUIDMixin
from app.models.enums import (
    ChannelType,
    DeliveryStatus,
    NotificationEvent,
    NotificationPriority,
)

if TYPE_CHECKING:
    from app.models.letter import Letter


class Notification(Base, UUIDMixin, CreatedAtMixin):
    """In-app message addressed to a single recipient."""

    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    letter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    type: Mapped[NotificationEvent] = mapped_column(
        String(50),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    body: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        String(20),
        default=NotificationPriority.NORMAL,
        nullable=False,
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    dedupe_key: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    # "metadata" is reserved on declarative classes
    meta: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    # Relationships
    letter: Mapped[Optional["Letter"]] = relationship("Letter")
    deliveries: Mapped[List["NotificationDelivery"]] = relationship(
        "NotificationDelivery",
        back_populates="notification",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_notifications_user_dedupe", "user_id", "dedupe_key", "created_at"),
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"


class NotificationDelivery(Base, UUIDMixin, CreatedAtMixin):
    """Outcome of delivering a notification through one channel."""

    __tablename__ = "notification_deliveries"

    notification_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    channel: Mapped[ChannelType] = mapped_column(String(20), nullable=False)
    status: Mapped[DeliveryStatus] = mapped_column(
        String(20),
        default=DeliveryStatus.QUEUED,
        nullable=False,
    )
    recipient: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    notification: Mapped["Notification"] = relationship(
        "Notification",
        back_populates="deliveries",
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationDelivery(id={self.id}, channel={self.channel}, "
            f"status={self.status})>"
        )


class NotificationSubscription(Base, UUIDMixin, CreatedAtMixin):
    """Standing subscription of a user to an event type."""

    __tablename__ = "notification_subscriptions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # NotificationEvent value or "ALL"
    event: Mapped[str] = mapped_column(String(50), nullable=False, default="ALL")
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<NotificationSubscription(user_id={self.user_id}, event={self.event}, "
            f"scope={self.scope})>"
        )
