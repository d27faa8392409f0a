"""
User model for staff accounts.
"""
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.enums import DigestFrequency, Role

if TYPE_CHECKING:
    from app.models.notification_preference import NotificationPreference
    from app.models.user_profile import UserProfile


class User(Base, UUIDMixin, TimestampMixin):
    """Staff account model."""

    __tablename__ = "users"

    email: Mapped[Optional[str]] = mapped_column(
        String(320),
        unique=True,
        nullable=True,
        index=True,
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,  # Nullable for OAuth-only accounts
    )
    role: Mapped[Role] = mapped_column(
        String(50),
        default=Role.EMPLOYEE,
        nullable=False,
        index=True,
    )
    can_login: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    token_version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Telegram chat linked to the account
    telegram_chat_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    # Channel preference flags
    notify_email: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_telegram: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notify_sms: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notify_in_app: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Quiet hours, "HH:MM"
    quiet_hours_start: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    quiet_hours_end: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    digest_frequency: Mapped[DigestFrequency] = mapped_column(
        String(20),
        default=DigestFrequency.NONE,
        nullable=False,
    )

    # Relationships
    profile: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    notification_preference: Mapped[Optional["NotificationPreference"]] = relationship(
        "NotificationPreference",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
