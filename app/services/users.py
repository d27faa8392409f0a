"""
User administration service for bulk role, login and delete actions.
"""
import logging
from typing import Any, List
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import Role
from app.models.user import User

logger = logging.getLogger(__name__)

TRUE_VALUES = (True, "true", "enable")


class UserService:
    """Service class for user administration."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the user service.

        Args:
            db: Database session
        """
        self.db = db

    async def count_admins(self, user_ids: List[UUID] = None) -> int:
        """Count ADMIN users, optionally only among user_ids."""
        query = select(func.count()).select_from(User).where(User.role == Role.ADMIN.value)
        if user_ids is not None:
            query = query.where(User.id.in_(user_ids))
        return await self.db.scalar(query) or 0

    async def _ensure_admin_remains(self, user_ids: List[UUID], message: str) -> None:
        total = await self.count_admins()
        affected = await self.count_admins(user_ids)
        if total - affected <= 0:
            raise ValueError(message)

    async def set_role(self, user_ids: List[UUID], value: Any) -> int:
        """
        Set the role of several users.

        Any value other than ADMIN demotes to EMPLOYEE.

        Raises:
            ValueError: If no admin would remain
        """
        role = Role.ADMIN if value == Role.ADMIN.value else Role.EMPLOYEE

        if role != Role.ADMIN:
            await self._ensure_admin_remains(user_ids, "At least one admin is required")

        result = await self.db.execute(
            update(User)
            .where(User.id.in_(user_ids))
            .values(role=role.value, token_version=User.token_version + 1)
        )
        await self.db.commit()

        logger.info(f"Set role {role.value} for {result.rowcount} users")
        return result.rowcount

    async def set_can_login(self, user_ids: List[UUID], value: Any) -> int:
        """Enable or disable login for several users."""
        can_login = value in TRUE_VALUES

        values = {"can_login": can_login}
        if not can_login:
            # Revoke issued tokens
            values["token_version"] = User.token_version + 1

        result = await self.db.execute(
            update(User).where(User.id.in_(user_ids)).values(**values)
        )
        await self.db.commit()

        logger.info(f"Set can_login={can_login} for {result.rowcount} users")
        return result.rowcount

    async def delete_users(self, user_ids: List[UUID], actor: User) -> int:
        """
        Delete several users.

        Raises:
            ValueError: If the actor is among them or no admin would remain
        """
        if actor.id in user_ids:
            raise ValueError("Cannot delete yourself")

        await self._ensure_admin_remains(user_ids, "Cannot delete the last admin")

        result = await self.db.execute(delete(User).where(User.id.in_(user_ids)))
        await self.db.commit()

        logger.info(f"Deleted {result.rowcount} users")
        return result.rowcount
