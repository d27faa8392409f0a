"""
RolePermission model for per-role permission overrides.
"""
from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin


class RolePermission(Base, UUIDMixin, TimestampMixin):
    """Explicit grant or revoke of a permission for a role."""

    __tablename__ = "role_permissions"

    role: Mapped[str] = mapped_column(String(50), nullable=False)
    permission: Mapped[str] = mapped_column(String(50), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("role", "permission", name="uq_role_permissions_role_permission"),
    )
