# Pydantic schemas
from app.schemas.auth import (
    RefreshTokenRequest,
    Token,
    TokenPayload,
    UserLogin,
    UserResponse,
)
from app.schemas.letters import (
    HistoryResponse,
    LetterCreate,
    LetterDetail,
    LetterFieldUpdate,
    LetterListItem,
    LetterListResponse,
    LetterUpdateResponse,
    PaginatedResponse,
    TagResponse,
)
from app.schemas.notifications import (
    DeadlineCheckResponse,
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from app.schemas.requests import (
    RequestCreate,
    RequestResponse,
    RequestUpdate,
    SlaUpdateResponse,
)
from app.schemas.users import UserBulkAction, UserBulkResult

__all__ = [
    # Auth
    "UserLogin",
    "Token",
    "TokenPayload",
    "RefreshTokenRequest",
    "UserResponse",
    # Letters
    "LetterCreate",
    "LetterFieldUpdate",
    "LetterListItem",
    "LetterDetail",
    "LetterListResponse",
    "LetterUpdateResponse",
    "HistoryResponse",
    "TagResponse",
    "PaginatedResponse",
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
    "MarkReadRequest",
    "MarkReadResponse",
    "DeadlineCheckResponse",
    # Requests
    "RequestCreate",
    "RequestUpdate",
    "RequestResponse",
    "SlaUpdateResponse",
    # Users
    "UserBulkAction",
    "UserBulkResult",
]
