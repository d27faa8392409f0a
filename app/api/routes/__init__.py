"""API routes package."""
from app.api.routes import auth, cron, letters, notifications, requests, users

__all__ = ["auth", "cron", "letters", "notifications", "requests", "users"]
