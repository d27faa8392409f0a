"""
Role permissions with database overrides cached in Redis.

Each role has a default permission set. RolePermission rows grant or
revoke single permissions on top of it. SUPERADMIN always has every
permission.
"""
import json
import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import Permission, Role
from app.models.role_permission import RolePermission
from app.models.user import User
from app.services.redis_client import get_redis_client

logger = logging.getLogger(__name__)
settings = get_settings()

PERMISSIONS_CACHE_KEY = "permissions:matrix"

ALL_PERMISSIONS = [permission.value for permission in Permission]

DEFAULT_ROLE_PERMISSIONS: Dict[str, List[str]] = {
    Role.SUPERADMIN.value: list(ALL_PERMISSIONS),
    Role.ADMIN.value: list(ALL_PERMISSIONS),
    Role.MANAGER.value: [
        Permission.VIEW_REPORTS.value,
        Permission.MANAGE_LETTERS.value,
        Permission.VIEW_LETTERS.value,
        Permission.MANAGE_REQUESTS.value,
        Permission.VIEW_REQUESTS.value,
    ],
    Role.AUDITOR.value: [
        Permission.VIEW_AUDIT.value,
        Permission.VIEW_REPORTS.value,
        Permission.VIEW_LETTERS.value,
        Permission.VIEW_REQUESTS.value,
    ],
    Role.EMPLOYEE.value: [
        Permission.MANAGE_LETTERS.value,
        Permission.VIEW_LETTERS.value,
        Permission.VIEW_REQUESTS.value,
    ],
    Role.VIEWER.value: [
        Permission.VIEW_REPORTS.value,
        Permission.VIEW_LETTERS.value,
        Permission.VIEW_REQUESTS.value,
    ],
}


def build_permission_matrix(overrides: List[RolePermission]) -> Dict[str, List[str]]:
    """Apply database overrides on top of the default role permissions."""
    by_key = {(row.role, row.permission): row.enabled for row in overrides}

    matrix = {}
    for role in Role:
        if role == Role.SUPERADMIN:
            matrix[role.value] = list(ALL_PERMISSIONS)
            continue

        defaults = DEFAULT_ROLE_PERMISSIONS[role.value]
        matrix[role.value] = [
            permission
            for permission in ALL_PERMISSIONS
            if by_key.get((role.value, permission), permission in defaults)
        ]
    return matrix


async def _read_cache() -> Dict[str, List[str]]:
    try:
        redis = await get_redis_client()
        cached = await redis.get(PERMISSIONS_CACHE_KEY)
    except Exception as e:
        logger.warning(f"Permissions cache unavailable: {e}")
        return {}
    return json.loads(cached) if cached else {}


async def _write_cache(matrix: Dict[str, List[str]]) -> None:
    try:
        redis = await get_redis_client()
        await redis.setex(
            PERMISSIONS_CACHE_KEY,
            settings.permissions_cache_ttl,
            json.dumps(matrix),
        )
    except Exception as e:
        logger.warning(f"Failed to cache permissions: {e}")


async def load_permissions(db: AsyncSession) -> Dict[str, List[str]]:
    """
    Permission matrix of all roles.

    Served from Redis when cached, otherwise built from the
    database and cached for permissions_cache_ttl seconds.
    """
    matrix = await _read_cache()
    if matrix:
        return matrix

    result = await db.execute(select(RolePermission))
    matrix = build_permission_matrix(list(result.scalars().all()))
    await _write_cache(matrix)
    return matrix


async def has_permission(db: AsyncSession, user: User, permission: Permission) -> bool:
    """Check whether the user's role grants a permission."""
    if user.role == Role.SUPERADMIN:
        return True
    matrix = await load_permissions(db)
    return Permission(permission).value in matrix.get(user.role, [])
