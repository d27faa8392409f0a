"""
Tag model for labelling letters.
"""
from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, UUIDMixin
from app.models.letter import letter_tags

if TYPE_CHECKING:
    from app.models.letter import Letter


class Tag(Base, UUIDMixin, CreatedAtMixin):
    """Free-form label shared between letters."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#6B7280", nullable=False)

    letters: Mapped[List["Letter"]] = relationship(
        "Letter",
        secondary=letter_tags,
        back_populates="tags",
    )

    def __repr__(self) -> str:
        return f"<Tag(name={self.name})>"
