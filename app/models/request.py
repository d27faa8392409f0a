"""
Request model for citizen and organization service tickets.
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.enums import (
    RequestCategory,
    RequestPriority,
    RequestStatus,
    SlaStatus,
)

if TYPE_CHECKING:
    from app.models.history import RequestHistory


class Request(Base, UUIDMixin, TimestampMixin):
    """Service request with its own SLA workflow."""

    __tablename__ = "requests"

    organization: Mapped[str] = mapped_column(String(500), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_telegram: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[RequestStatus] = mapped_column(
        String(20),
        default=RequestStatus.NEW,
        nullable=False,
        index=True,
    )
    priority: Mapped[RequestPriority] = mapped_column(
        String(20),
        default=RequestPriority.NORMAL,
        nullable=False,
        index=True,
    )
    category: Mapped[RequestCategory] = mapped_column(
        String(30),
        default=RequestCategory.OTHER,
        nullable=False,
    )
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # SLA tracking
    sla_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    first_response_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    first_response_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    sla_status: Mapped[SlaStatus] = mapped_column(
        String(20),
        default=SlaStatus.ON_TIME,
        nullable=False,
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    history: Mapped[List["RequestHistory"]] = relationship(
        "RequestHistory",
        back_populates="request",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Request(id={self.id}, status={self.status})>"
