"""
Letter service: listing, creation, single-field updates with history,
duplication and soft deletion.
"""
import logging
import math
import re
import uuid
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models.base import as_utc
from app.models.enums import (
    DONE_STATUSES,
    STATUS_LABELS,
    LetterStatus,
    NotificationEvent,
    Role,
)
from app.models.history import History
from app.models.letter import Letter
from app.models.tag import Tag
from app.models.user import User
from app.models.watcher import Watcher
from app.schemas.letters import LetterCreate
from app.services.notification_service import NotificationService
from app.services.notifications.base import ChannelMessage

logger = logging.getLogger(__name__)
settings = get_settings()

IDENTITY_ROLES = (Role.ADMIN, Role.SUPERADMIN)

COPY_SUFFIX = "-КОПИЯ"

# Editable text fields and their length limits
TEXT_FIELD_LIMITS = {
    "comment": 5000,
    "answer": 10000,
    "zordoc": 5000,
    "jira_link": 500,
    "send_status": 200,
    "content": 10000,
    "contacts": 500,
    "type": 200,
    "applicant_name": 200,
    "applicant_email": 320,
    "applicant_phone": 50,
    "applicant_telegram_chat_id": 50,
}

NUMBER_MAX_LENGTH = 50
ORG_MAX_LENGTH = 500

EDITABLE_FIELDS = {
    "number",
    "org",
    "status",
    "owner",
    "priority",
    "deadline_date",
    *TEXT_FIELD_LIMITS,
}

DOT_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class LetterNotFoundError(ValueError):
    """Letter does not exist or was deleted."""


class LetterConflictError(ValueError):
    """Letter number is already taken."""


class LetterPermissionError(ValueError):
    """Actor may not perform this change."""


class InvalidLetterFieldError(ValueError):
    """Unknown field or invalid value."""


def sanitize_input(value: Any, max_length: int = 10000) -> str:
    """Escape markup characters, cap the length and trim whitespace."""
    if value is None:
        return ""
    text = str(value).replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
    return text[:max_length].strip()


def parse_date_value(value: Any) -> Optional[datetime]:
    """
    Parse a date from a datetime, ISO string, DD.MM.YYYY or DD/MM/YYYY.

    Returns a UTC datetime, or None when the value is not a valid date.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    match = DOT_DATE.match(trimmed) or SLASH_DATE.match(trimmed)
    try:
        if match:
            day, month, year = (int(part) for part in match.groups())
            return datetime(year, month, day, tzinfo=timezone.utc)
        return as_utc(datetime.fromisoformat(trimmed.replace("Z", "+00:00")))
    except ValueError:
        return None


def _history_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, LetterStatus):
        return value.value
    return str(value)


def can_edit_identity(user: User) -> bool:
    return user.role in IDENTITY_ROLES


class LetterService:
    """Service class for letter operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the letter service.

        Args:
            db: Database session
        """
        self.db = db
        self.notifications = NotificationService(db)

    async def get_letter(self, letter_id: uuid.UUID) -> Letter:
        """
        Get a non-deleted letter with its tags and watchers.

        Raises:
            LetterNotFoundError: If the letter is missing or soft-deleted
        """
        result = await self.db.execute(
            select(Letter)
            .where(Letter.id == letter_id, Letter.deleted_at.is_(None))
            .options(selectinload(Letter.tags), selectinload(Letter.watchers))
        )
        letter = result.scalar_one_or_none()
        if not letter:
            raise LetterNotFoundError("Letter not found")
        return letter

    async def list_letters(
        self,
        page: int = 1,
        per_page: int = 20,
        status: Optional[LetterStatus] = None,
        owner_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Letter], int, int]:
        """
        List non-deleted letters, newest first.

        Returns:
            Tuple of (letters, total, pages)
        """
        query = select(Letter).where(Letter.deleted_at.is_(None))

        if status:
            query = query.where(Letter.status == LetterStatus(status).value)
        if owner_id:
            query = query.where(Letter.owner_id == owner_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(Letter.number.ilike(pattern), Letter.org.ilike(pattern))
            )

        total = await self.db.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0

        result = await self.db.execute(
            query.order_by(Letter.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        pages = math.ceil(total / per_page) if total > 0 else 0
        return list(result.scalars().all()), total, pages

    async def ensure_number_available(
        self, number: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        """
        Raises:
            LetterConflictError: If a non-deleted letter already uses the number
        """
        query = select(Letter.id).where(
            func.lower(Letter.number) == number.lower(),
            Letter.deleted_at.is_(None),
        )
        if exclude_id:
            query = query.where(Letter.id != exclude_id)
        existing = await self.db.execute(query.limit(1))
        if existing.first() is not None:
            raise LetterConflictError("Letter number already exists")

    async def _watch(self, letter_id: uuid.UUID, user_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(Watcher).where(
                Watcher.letter_id == letter_id,
                Watcher.user_id == user_id,
            )
        )
        if result.scalar_one_or_none() is None:
            self.db.add(Watcher(letter_id=letter_id, user_id=user_id))

    async def create(self, data: LetterCreate, actor: User) -> Letter:
        """
        Create a letter and notify NEW_LETTER subscribers.

        Raises:
            InvalidLetterFieldError: If number or organization is empty
            LetterConflictError: If the number is taken
        """
        number = sanitize_input(data.number, NUMBER_MAX_LENGTH)
        org = sanitize_input(data.org, ORG_MAX_LENGTH)
        if not number:
            raise InvalidLetterFieldError("Invalid number")
        if not org:
            raise InvalidLetterFieldError("Invalid organization")

        await self.ensure_number_available(number)

        tags = []
        if data.tag_ids:
            result = await self.db.execute(select(Tag).where(Tag.id.in_(data.tag_ids)))
            tags = list(result.scalars().all())

        letter = Letter(
            id=uuid.uuid4(),
            number=number,
            org=org,
            date=as_utc(data.date),
            deadline_date=as_utc(data.deadline_date) if data.deadline_date else None,
            status=LetterStatus.NOT_REVIEWED,
            priority=data.priority,
            owner_id=data.owner_id,
            tags=tags,
        )
        for field, limit in TEXT_FIELD_LIMITS.items():
            value = getattr(data, field, None)
            if value is not None:
                setattr(letter, field, sanitize_input(value, limit) or None)

        self.db.add(letter)
        await self.db.flush()
        if letter.owner_id:
            await self._watch(letter.id, letter.owner_id)
        self.db.add(
            History(
                letter_id=letter.id,
                user_id=actor.id,
                field="created",
                new_value=number,
            )
        )
        await self.db.commit()

        logger.info(f"Letter {letter.number} created by {actor.id}")

        await self.notifications.dispatch(
            event=NotificationEvent.NEW_LETTER,
            title=f"Новое письмо №-{letter.number}",
            body=letter.org,
            letter_id=letter.id,
            actor_id=actor.id,
        )
        if letter.owner_id and letter.owner_id != actor.id:
            await self._notify_assignment(letter, letter.owner_id, actor)

        return letter

    async def _resolve_field(
        self, letter: Letter, field: str, value: Any, actor: User
    ) -> Tuple[str, Any, Optional[str]]:
        """
        Validate a field update.

        Returns:
            Tuple of (attribute name, new attribute value, history value)
        """
        if field in ("number", "org") and not can_edit_identity(actor):
            raise LetterPermissionError("Forbidden")

        if field == "number":
            if not isinstance(value, str):
                raise InvalidLetterFieldError("Invalid number")
            number = sanitize_input(value, NUMBER_MAX_LENGTH)
            if not number:
                raise InvalidLetterFieldError("Invalid number")
            if letter.number.strip().lower() != number.lower():
                await self.ensure_number_available(number, exclude_id=letter.id)
            return "number", number, number

        if field == "org":
            if not isinstance(value, str):
                raise InvalidLetterFieldError("Invalid organization")
            org = sanitize_input(value, ORG_MAX_LENGTH)
            if not org:
                raise InvalidLetterFieldError("Invalid organization")
            return "org", org, org

        if field == "status":
            try:
                status = LetterStatus(value)
            except ValueError:
                raise InvalidLetterFieldError("Invalid status")
            return "status", status, status.value

        if field == "owner":
            if not value:
                return "owner_id", None, None
            try:
                owner_id = uuid.UUID(str(value))
            except ValueError:
                raise InvalidLetterFieldError("Invalid owner")
            if await self.db.get(User, owner_id) is None:
                raise InvalidLetterFieldError("Owner not found")
            return "owner_id", owner_id, str(owner_id)

        if field == "priority":
            try:
                priority = int(value)
            except (TypeError, ValueError):
                raise InvalidLetterFieldError("Invalid priority")
            if not 0 <= priority <= 100:
                raise InvalidLetterFieldError("Invalid priority")
            return "priority", priority, str(priority)

        if field == "deadline_date":
            parsed = parse_date_value(value)
            if not parsed:
                raise InvalidLetterFieldError("Invalid deadline date")
            return "deadline_date", parsed, parsed.isoformat()

        sanitized = sanitize_input(value, TEXT_FIELD_LIMITS[field])
        if field == "type":
            sanitized = sanitized or None
        return field, sanitized, sanitized

    async def update_field(
        self, letter_id: uuid.UUID, field: str, value: Any, actor: User
    ) -> Letter:
        """
        Update one field of a letter and record it in history.

        The update and its History row are committed together.
        Notifications are sent after the commit.

        Raises:
            LetterNotFoundError: If the letter is missing
            InvalidLetterFieldError: If the field or value is invalid
            LetterPermissionError: If the actor may not edit the field
            LetterConflictError: If a new number is taken
        """
        if field not in EDITABLE_FIELDS:
            raise InvalidLetterFieldError("Invalid field")

        letter = await self.get_letter(letter_id)
        attribute, new_value, history_new = await self._resolve_field(
            letter, field, value, actor
        )
        old_value = getattr(letter, attribute)
        history_old = _history_value(old_value)

        setattr(letter, attribute, new_value)
        if field == "status" and new_value in DONE_STATUSES and not letter.close_date:
            letter.close_date = datetime.now(timezone.utc)
        if field == "owner" and new_value:
            await self._watch(letter.id, new_value)

        self.db.add(
            History(
                letter_id=letter.id,
                user_id=actor.id,
                field=field,
                old_value=history_old,
                new_value=history_new,
            )
        )
        await self.db.commit()

        logger.info(f"Letter {letter.number}: {field} updated by {actor.id}")

        if field == "owner" and new_value and new_value != actor.id:
            await self._notify_assignment(letter, new_value, actor)
        if field == "status":
            await self._notify_status_change(letter, LetterStatus(old_value), new_value, actor)

        return letter

    async def _notify_assignment(
        self, letter: Letter, owner_id: uuid.UUID, actor: User
    ) -> None:
        await self.notifications.dispatch(
            event=NotificationEvent.ASSIGNMENT,
            title=f"Назначено письмо №-{letter.number}",
            body=letter.org,
            letter_id=letter.id,
            actor_id=actor.id,
            user_ids=[owner_id],
        )

    async def _notify_status_change(
        self,
        letter: Letter,
        old_status: LetterStatus,
        new_status: LetterStatus,
        actor: User,
    ) -> None:
        result = await self.db.execute(
            select(Watcher.user_id).where(
                Watcher.letter_id == letter.id,
                Watcher.notify_on_change.is_(True),
                Watcher.user_id != actor.id,
            )
        )
        watcher_ids = list(result.scalars().all())

        old_label = STATUS_LABELS.get(old_status, old_status)
        new_label = STATUS_LABELS.get(new_status, new_status)

        if watcher_ids:
            await self.notifications.dispatch(
                event=NotificationEvent.STATUS,
                title=f"Статус письма №-{letter.number} обновлен",
                body=f"{old_label} -> {new_label}",
                letter_id=letter.id,
                actor_id=actor.id,
                user_ids=watcher_ids,
                metadata={"old_status": old_status.value, "new_status": new_status.value},
                dedupe_key=f"STATUS:{letter.id}:{new_status.value}",
            )

        if letter.applicant_email or letter.applicant_phone or letter.applicant_telegram_chat_id:
            message = ChannelMessage.from_parts(
                f"Статус письма №{letter.number} изменен",
                "\n".join(
                    [
                        f"Номер: {letter.number}",
                        f"Организация: {letter.org}",
                        f"Было: {old_label}",
                        f"Стало: {new_label}",
                    ]
                ),
            )
            results = await self.notifications.send_direct(
                message,
                email=letter.applicant_email,
                phone=letter.applicant_phone,
                telegram_chat_id=letter.applicant_telegram_chat_id,
            )
            logger.info(f"Applicant notified about letter {letter.number}: {results}")

    async def duplicate(self, letter_id: uuid.UUID, actor: User) -> Letter:
        """
        Copy a letter as a fresh NOT_REVIEWED letter owned by the actor.

        Processing results and the applicant access token are not copied.
        """
        original = await self.get_letter(letter_id)

        letter_copy = Letter(
            id=uuid.uuid4(),
            number=f"{original.number}{COPY_SUFFIX}",
            org=original.org,
            date=original.date,
            deadline_date=original.deadline_date,
            status=LetterStatus.NOT_REVIEWED,
            type=original.type,
            content=original.content,
            comment=original.comment,
            contacts=original.contacts,
            answer=None,
            zordoc=None,
            jira_link=None,
            send_status=None,
            close_date=None,
            priority=original.priority,
            owner_id=actor.id,
            applicant_name=original.applicant_name,
            applicant_email=original.applicant_email,
            applicant_phone=original.applicant_phone,
            applicant_telegram_chat_id=original.applicant_telegram_chat_id,
            applicant_access_token=None,
            applicant_access_token_expires_at=None,
            tags=list(original.tags),
        )
        self.db.add(letter_copy)
        await self.db.flush()
        self.db.add(
            History(
                letter_id=letter_copy.id,
                user_id=actor.id,
                field="created",
                new_value=f"Скопировано из письма №{original.number}",
            )
        )
        await self.db.commit()

        logger.info(f"Letter {original.number} duplicated as {letter_copy.number}")
        return letter_copy

    async def soft_delete(self, letter_id: uuid.UUID, actor: User) -> None:
        """
        Mark a letter as deleted.

        Raises:
            LetterPermissionError: If the actor is not an admin
            LetterNotFoundError: If the letter is missing
        """
        if not can_edit_identity(actor):
            raise LetterPermissionError("Forbidden")

        letter = await self.get_letter(letter_id)
        letter.deleted_at = datetime.now(timezone.utc)
        self.db.add(
            History(
                letter_id=letter.id,
                user_id=actor.id,
                field="deleted",
                old_value=None,
                new_value="true",
            )
        )
        await self.db.commit()

        logger.info(f"Letter {letter.number} deleted by {actor.id}")

    async def get_history(self, letter_id: uuid.UUID) -> List[History]:
        """History of a letter, newest first."""
        await self.get_letter(letter_id)
        result = await self.db.execute(
            select(History)
            .where(History.letter_id == letter_id)
            .order_by(History.created_at.desc())
        )
        return list(result.scalars().all())
