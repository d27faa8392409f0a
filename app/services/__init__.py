# Business logic services
from app.services.auth import (
    AuthService,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.services.redis_client import close_redis_client, get_redis_client
from app.services.notification_service import (
    DispatchSummary,
    NotificationService,
)
from app.services.permissions import has_permission

__all__ = [
    "AuthService",
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "get_redis_client",
    "close_redis_client",
    "NotificationService",
    "DispatchSummary",
    "has_permission",
]
