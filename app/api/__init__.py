# API routes
from app.api.deps import (
    get_current_active_user,
    get_current_user,
    oauth2_scheme,
    require_permission,
    require_roles,
    verify_cron_secret,
)

__all__ = [
    "get_current_user",
    "get_current_active_user",
    "require_permission",
    "require_roles",
    "verify_cron_secret",
    "oauth2_scheme",
]
