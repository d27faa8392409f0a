"""
Append-only change history for letters and service requests.
"""
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.letter import Letter
    from app.models.request import Request
    from app.models.user import User


class History(Base, UUIDMixin, CreatedAtMixin):
    """One recorded field change of a letter."""

    __tablename__ = "letter_history"

    letter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    field: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    letter: Mapped["Letter"] = relationship("Letter", back_populates="history")
    user: Mapped[Optional["User"]] = relationship("User")

    __table_args__ = (
        Index("ix_letter_history_letter_created", "letter_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<History(letter_id={self.letter_id}, field={self.field})>"


class RequestHistory(Base, UUIDMixin, CreatedAtMixin):
    """One recorded field change of a service request."""

    __tablename__ = "request_history"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    field: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    request: Mapped["Request"] = relationship("Request", back_populates="history")

    __table_args__ = (
        Index("ix_request_history_request_created", "request_id", "created_at"),
    )
