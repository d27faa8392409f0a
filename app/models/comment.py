"""
Comment model for threaded letter discussion.
"""
import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.letter import Letter
    from app.models.user import User


class Comment(Base, UUIDMixin, TimestampMixin):
    """Comment on a letter, optionally a reply to another comment."""

    __tablename__ = "comments"

    letter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)

    letter: Mapped["Letter"] = relationship("Letter", back_populates="comments")
    author: Mapped["User"] = relationship("User")
    replies: Mapped[List["Comment"]] = relationship(
        "Comment",
        cascade="all, delete-orphan",
    )
