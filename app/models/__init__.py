"""
SQLAlchemy models for the application.
"""
from app.models.base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin
from app.models.comment import Comment
from app.models.enums import (
    ChannelType,
    DeliveryStatus,
    DigestFrequency,
    LetterStatus,
    NotificationEvent,
    NotificationPriority,
    Permission,
    RequestCategory,
    RequestPriority,
    RequestStatus,
    Role,
    SlaStatus,
    SubscriptionScope,
)
from app.models.history import History, RequestHistory
from app.models.letter import Letter, letter_tags
from app.models.letter_file import LetterFile
from app.models.notification import (
    Notification,
    NotificationDelivery,
    NotificationSubscription,
)
from app.models.notification_preference import NotificationPreference
from app.models.request import Request
from app.models.role_permission import RolePermission
from app.models.tag import Tag
from app.models.template import LetterTemplate
from app.models.user import User
from app.models.user_profile import UserProfile
from app.models.watcher import Favorite, Watcher

__all__ = [
    # Base
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "UUIDMixin",
    # Enums
    "ChannelType",
    "DeliveryStatus",
    "DigestFrequency",
    "LetterStatus",
    "NotificationEvent",
    "NotificationPriority",
    "Permission",
    "RequestCategory",
    "RequestPriority",
    "RequestStatus",
    "Role",
    "SlaStatus",
    "SubscriptionScope",
    # Models
    "User",
    "UserProfile",
    "NotificationPreference",
    "Letter",
    "letter_tags",
    "History",
    "RequestHistory",
    "Watcher",
    "Favorite",
    "Tag",
    "Comment",
    "LetterFile",
    "LetterTemplate",
    "Request",
    "Notification",
    "NotificationDelivery",
    "NotificationSubscription",
    "RolePermission",
]
