"""
Letter model for incoming correspondence.
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.enums import LetterStatus

if TYPE_CHECKING:
    from app.models.comment import Comment
    from app.models.history import History
    from app.models.letter_file import LetterFile
    from app.models.tag import Tag
    from app.models.user import User
    from app.models.watcher import Favorite, Watcher


letter_tags = Table(
    "letter_tags",
    Base.metadata,
    Column(
        "letter_id",
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        UUID(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Letter(Base, UUIDMixin, TimestampMixin):
    """Incoming correspondence tracked through the status workflow."""

    __tablename__ = "letters"

    number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    org: Mapped[str] = mapped_column(String(500), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    status: Mapped[LetterStatus] = mapped_column(
        String(50),
        default=LetterStatus.NOT_REVIEWED,
        nullable=False,
        index=True,
    )
    type: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contacts: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Processing results
    answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    zordoc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    jira_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    send_status: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    close_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    priority: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Applicant contacts
    applicant_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    applicant_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    applicant_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    applicant_telegram_chat_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    applicant_access_token: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )
    applicant_access_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Soft delete
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    # Relationships
    owner: Mapped[Optional["User"]] = relationship("User")
    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary=letter_tags,
        back_populates="letters",
    )
    history: Mapped[List["History"]] = relationship(
        "History",
        back_populates="letter",
        cascade="all, delete-orphan",
        order_by="History.created_at.desc()",
    )
    watchers: Mapped[List["Watcher"]] = relationship(
        "Watcher",
        back_populates="letter",
        cascade="all, delete-orphan",
    )
    favorites: Mapped[List["Favorite"]] = relationship(
        "Favorite",
        back_populates="letter",
        cascade="all, delete-orphan",
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="letter",
        cascade="all, delete-orphan",
    )
    files: Mapped[List["LetterFile"]] = relationship(
        "LetterFile",
        back_populates="letter",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_letters_status_deadline", "status", "deadline_date"),
    )

    def __repr__(self) -> str:
        return f"<Letter(id={self.id}, number={self.number})>"
