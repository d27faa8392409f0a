"""
Enum types for database models.
"""
from enum import Enum


class Role(str, Enum):
    """Staff account roles."""
    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    AUDITOR = "AUDITOR"
    EMPLOYEE = "EMPLOYEE"
    VIEWER = "VIEWER"


class LetterStatus(str, Enum):
    """Letter workflow status."""
    NOT_REVIEWED = "NOT_REVIEWED"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    CLARIFICATION = "CLARIFICATION"
    READY = "READY"
    DONE = "DONE"


# Statuses that close a letter
DONE_STATUSES = {LetterStatus.READY, LetterStatus.DONE}

STATUS_LABELS = {
    LetterStatus.NOT_REVIEWED: "Не рассмотрен",
    LetterStatus.ACCEPTED: "Принят",
    LetterStatus.IN_PROGRESS: "В работе",
    LetterStatus.CLARIFICATION: "На уточнении",
    LetterStatus.READY: "Готово",
    LetterStatus.DONE: "Сделано",
}


class RequestStatus(str, Enum):
    """Service request status."""
    NEW = "NEW"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"
    SPAM = "SPAM"
    CANCELLED = "CANCELLED"


class RequestPriority(str, Enum):
    """Service request priority."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RequestCategory(str, Enum):
    """Service request category."""
    CONSULTATION = "CONSULTATION"
    TECHNICAL = "TECHNICAL"
    DOCUMENTATION = "DOCUMENTATION"
    COMPLAINT = "COMPLAINT"
    SUGGESTION = "SUGGESTION"
    OTHER = "OTHER"


class SlaStatus(str, Enum):
    """SLA state of a service request."""
    ON_TIME = "ON_TIME"
    AT_RISK = "AT_RISK"
    BREACHED = "BREACHED"


class NotificationEvent(str, Enum):
    """Events that produce notifications."""
    NEW_LETTER = "NEW_LETTER"
    COMMENT = "COMMENT"
    STATUS = "STATUS"
    ASSIGNMENT = "ASSIGNMENT"
    DEADLINE_URGENT = "DEADLINE_URGENT"
    DEADLINE_OVERDUE = "DEADLINE_OVERDUE"
    SYSTEM = "SYSTEM"


class NotificationPriority(str, Enum):
    """Stored priority of an in-app notification."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ChannelType(str, Enum):
    """Delivery channels."""
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    TELEGRAM = "TELEGRAM"
    SMS = "SMS"
    PUSH = "PUSH"


class DeliveryStatus(str, Enum):
    """Outcome of a single channel delivery."""
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class DigestFrequency(str, Enum):
    """Email digest schedule."""
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class SubscriptionScope(str, Enum):
    """Who a notification subscription follows."""
    ALL = "ALL"
    ROLE = "ROLE"
    USER = "USER"


class Permission(str, Enum):
    """Permissions granted to roles."""
    MANAGE_USERS = "MANAGE_USERS"
    VIEW_AUDIT = "VIEW_AUDIT"
    VIEW_REPORTS = "VIEW_REPORTS"
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    MANAGE_LETTERS = "MANAGE_LETTERS"
    VIEW_LETTERS = "VIEW_LETTERS"
    MANAGE_REQUESTS = "MANAGE_REQUESTS"
    VIEW_REQUESTS = "VIEW_REQUESTS"
    SYNC_SHEETS = "SYNC_SHEETS"
