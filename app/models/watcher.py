"""
Watcher and Favorite join records between users and letters.
"""
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.letter import Letter
    from app.models.user import User


class Watcher(Base, UUIDMixin, CreatedAtMixin):
    """User subscribed to change notifications of a letter."""

    __tablename__ = "watchers"

    letter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notify_on_change: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    letter: Mapped["Letter"] = relationship("Letter", back_populates="watchers")
    user: Mapped["User"] = relationship("User")

    __table_args__ = (
        UniqueConstraint("letter_id", "user_id", name="uq_watchers_letter_user"),
    )


class Favorite(Base, UUIDMixin, CreatedAtMixin):
    """Letter bookmarked by a user."""

    __tablename__ = "favorites"

    letter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    letter: Mapped["Letter"] = relationship("Letter", back_populates="favorites")

    __table_args__ = (
        UniqueConstraint("letter_id", "user_id", name="uq_favorites_letter_user"),
    )
