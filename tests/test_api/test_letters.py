"""Tests for letters API endpoints."""
import uuid
from datetime import datetime, timezone

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.enums import LetterStatus, NotificationEvent, Role
from app.models.history import History
from app.models.letter import Letter
from app.models.notification import Notification
from app.models.user import User
from app.models.watcher import Watcher
from app.services.auth import create_access_token


async def get_history(db_session: AsyncSession, letter_id, field: str) -> list:
    result = await db_session.execute(
        select(History).where(History.letter_id == letter_id, History.field == field)
    )
    return list(result.scalars().all())


class TestListLetters:
    """Tests for GET /api/letters."""

    async def test_list_letters(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.get("/api/letters", headers=employee_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["number"] == "101/A"

    async def test_list_search(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.get(
            "/api/letters?search=ministry", headers=employee_headers
        )
        assert response.json()["total"] == 1

        response = await client.get(
            "/api/letters?search=nothing-like-this", headers=employee_headers
        )
        assert response.json()["total"] == 0

    async def test_list_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/letters")
        assert response.status_code == 401


class TestCreateLetter:
    """Tests for POST /api/letters."""

    async def test_create_letter_notifies_owner(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        employee_headers: dict,
        manager: User,
        mock_channels: dict,
    ):
        response = await client.post(
            "/api/letters",
            headers=employee_headers,
            json={
                "number": "  202/B ",
                "org": "Tax <Committee>",
                "date": "2026-10-01T00:00:00Z",
                "owner_id": str(manager.id),
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["number"] == "202/B"
        assert data["org"] == "Tax &lt;Committee&gt;"
        assert data["status"] == "NOT_REVIEWED"

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == manager.id)
        )
        notifications = result.scalars().all()
        assert len(notifications) == 1
        assert notifications[0].type == NotificationEvent.ASSIGNMENT.value
        mock_channels["email"].send.assert_awaited_once()
        assert mock_channels["email"].send.call_args.args[0] == manager.email

    async def test_create_duplicate_number(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.post(
            "/api/letters",
            headers=employee_headers,
            json={"number": "101/a", "org": "Other", "date": "2026-10-01T00:00:00Z"},
        )
        assert response.status_code == 409


class TestGetLetter:
    """Tests for GET /api/letters/{id}."""

    async def test_get_letter(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.get(f"/api/letters/{letter.id}", headers=employee_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Statistics attached"
        assert {tag["name"] for tag in data["tags"]} == {"urgent", "finance"}

    async def test_get_missing_letter(self, client: AsyncClient, employee_headers: dict):
        response = await client.get(f"/api/letters/{uuid.uuid4()}", headers=employee_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Letter not found"


class TestUpdateLetter:
    """Tests for PATCH /api/letters/{id}."""

    async def test_status_update_writes_one_history_row(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        employee: User,
        employee_headers: dict,
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "status", "value": "DONE"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["letter"]["status"] == "DONE"

        history = await get_history(db_session, letter.id, "status")
        assert len(history) == 1
        assert history[0].old_value == "IN_PROGRESS"
        assert history[0].new_value == "DONE"
        assert history[0].user_id == employee.id

    async def test_done_status_sets_close_date(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        employee_headers: dict,
    ):
        letter.close_date = None
        await db_session.commit()

        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "status", "value": "READY"},
        )
        assert response.status_code == 200
        assert response.json()["letter"]["close_date"] is not None

    async def test_status_change_notifies_watchers_and_applicant(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        manager: User,
        employee_headers: dict,
        mock_channels: dict,
    ):
        db_session.add(Watcher(letter_id=letter.id, user_id=manager.id))
        letter.applicant_email = "applicant@example.com"
        await db_session.commit()

        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "status", "value": "CLARIFICATION"},
        )
        assert response.status_code == 200

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == manager.id)
        )
        notification = result.scalar_one()
        assert notification.type == NotificationEvent.STATUS.value
        assert notification.dedupe_key == f"STATUS:{letter.id}:CLARIFICATION"
        assert notification.meta == {
            "old_status": "IN_PROGRESS",
            "new_status": "CLARIFICATION",
        }

        recipients = [call.args[0] for call in mock_channels["email"].send.call_args_list]
        assert "applicant@example.com" in recipients

    async def test_invalid_status(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "status", "value": "ARCHIVED"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid status"

    async def test_invalid_field(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        employee_headers: dict,
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "deleted_at", "value": None},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid field"
        assert await get_history(db_session, letter.id, "deleted_at") == []

    async def test_text_field_is_sanitized(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        employee_headers: dict,
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "comment", "value": ' <b>"call back"</b> '},
        )
        assert response.status_code == 200
        assert (
            response.json()["letter"]["comment"]
            == "&lt;b&gt;&quot;call back&quot;&lt;/b&gt;"
        )

    async def test_deadline_date_formats(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "deadline_date", "value": "25.12.2026"},
        )
        assert response.status_code == 200
        assert response.json()["letter"]["deadline_date"].startswith("2026-12-25")

        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "deadline_date", "value": "not a date"},
        )
        assert response.status_code == 400

    async def test_priority_out_of_range(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "priority", "value": 101},
        )
        assert response.status_code == 400

    async def test_number_edit_forbidden_for_employee(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "number", "value": "999"},
        )
        assert response.status_code == 403

    async def test_number_conflict(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        admin_headers: dict,
    ):
        other = Letter(
            id=uuid.uuid4(),
            number="102/A",
            org="Other org",
            date=datetime.now(timezone.utc),
            status=LetterStatus.NOT_REVIEWED,
        )
        db_session.add(other)
        await db_session.commit()

        response = await client.patch(
            f"/api/letters/{other.id}",
            headers=admin_headers,
            json={"field": "number", "value": "101/a"},
        )
        assert response.status_code == 409
        assert await get_history(db_session, other.id, "number") == []

    async def test_admin_renames_number(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        admin_headers: dict,
    ):
        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers=admin_headers,
            json={"field": "number", "value": "101/B"},
        )
        assert response.status_code == 200
        history = await get_history(db_session, letter.id, "number")
        assert [(h.old_value, h.new_value) for h in history] == [("101/A", "101/B")]

    async def test_other_users_letter_forbidden(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        manager: User,
    ):
        manager.role = Role.VIEWER
        await db_session.commit()

        response = await client.patch(
            f"/api/letters/{letter.id}",
            headers={"Authorization": f"Bearer {create_access_token(manager)}"},
            json={"field": "comment", "value": "x"},
        )
        assert response.status_code == 403


class TestDuplicateLetter:
    """Tests for POST /api/letters/{id}/duplicate."""

    async def test_duplicate_resets_processing_fields(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        employee: User,
        employee_headers: dict,
    ):
        response = await client.post(
            f"/api/letters/{letter.id}/duplicate", headers=employee_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["number"] == "101/A-КОПИЯ"

        result = await db_session.execute(
            select(Letter)
            .where(Letter.id == uuid.UUID(data["id"]))
            .options(selectinload(Letter.tags))
        )
        letter_copy = result.scalar_one()
        assert letter_copy.status == LetterStatus.NOT_REVIEWED.value
        assert letter_copy.answer is None
        assert letter_copy.zordoc is None
        assert letter_copy.jira_link is None
        assert letter_copy.send_status is None
        assert letter_copy.close_date is None
        assert letter_copy.applicant_access_token is None
        assert letter_copy.content == letter.content
        assert letter_copy.owner_id == employee.id
        assert {tag.name for tag in letter_copy.tags} == {"urgent", "finance"}

        history = await get_history(db_session, letter_copy.id, "created")
        assert len(history) == 1
        assert "101/A" in history[0].new_value


class TestDeleteLetter:
    """Tests for DELETE /api/letters/{id}."""

    async def test_soft_delete(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        letter: Letter,
        admin_headers: dict,
    ):
        response = await client.delete(f"/api/letters/{letter.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        await db_session.refresh(letter)
        assert letter.deleted_at is not None

        response = await client.get("/api/letters", headers=admin_headers)
        assert response.json()["total"] == 0

        response = await client.get(f"/api/letters/{letter.id}", headers=admin_headers)
        assert response.status_code == 404

        history = await get_history(db_session, letter.id, "deleted")
        assert len(history) == 1
        assert history[0].new_value == "true"

    async def test_delete_forbidden_for_employee(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        response = await client.delete(f"/api/letters/{letter.id}", headers=employee_headers)
        assert response.status_code == 403


class TestLetterHistory:
    """Tests for GET /api/letters/{id}/history."""

    async def test_history(
        self, client: AsyncClient, letter: Letter, employee_headers: dict
    ):
        await client.patch(
            f"/api/letters/{letter.id}",
            headers=employee_headers,
            json={"field": "comment", "value": "first"},
        )
        response = await client.get(
            f"/api/letters/{letter.id}/history", headers=employee_headers
        )
        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["field"] == "comment"
        assert entries[0]["new_value"] == "first"
