"""Tests for service requests API endpoints."""
import uuid
from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RequestStatus, SlaStatus
from app.models.history import RequestHistory
from app.models.request import Request
from app.models.user import User
from app.services.auth import create_access_token


def request_payload(**overrides) -> dict:
    payload = {
        "organization": "City Clinic 4",
        "contact_name": "Dilnoza",
        "contact_email": "clinic@example.com",
        "description": "Cannot sign in to the reporting portal",
        "priority": "HIGH",
        "category": "TECHNICAL",
    }
    payload.update(overrides)
    return payload


class TestCreateRequest:
    """Tests for POST /api/requests."""

    async def test_create_sets_sla_deadlines(self, client: AsyncClient):
        response = await client.post("/api/requests", json=request_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "NEW"
        assert data["sla_status"] == "ON_TIME"

        created = datetime.fromisoformat(data["created_at"].replace("Z", "+00:00"))
        deadline = datetime.fromisoformat(data["sla_deadline"].replace("Z", "+00:00"))
        first_response = datetime.fromisoformat(
            data["first_response_deadline"].replace("Z", "+00:00")
        )
        assert deadline - created == timedelta(hours=24)
        assert first_response - created == timedelta(hours=4)
        assert 23.5 < data["hours_left"] <= 24.0

    async def test_create_invalid_email(self, client: AsyncClient):
        response = await client.post(
            "/api/requests", json=request_payload(contact_email="not-an-email")
        )
        assert response.status_code == 400


class TestUpdateRequest:
    """Tests for PATCH /api/requests/{id}."""

    async def test_status_flow_records_history(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        manager: User,
    ):
        headers = {"Authorization": f"Bearer {create_access_token(manager)}"}
        created = (await client.post("/api/requests", json=request_payload())).json()

        response = await client.patch(
            f"/api/requests/{created['id']}",
            headers=headers,
            json={"status": "IN_REVIEW"},
        )
        assert response.status_code == 200
        assert response.json()["first_response_at"] is not None
        assert response.json()["resolved_at"] is None

        response = await client.patch(
            f"/api/requests/{created['id']}",
            headers=headers,
            json={"status": "DONE"},
        )
        data = response.json()
        assert data["resolved_at"] is not None
        assert data["sla_status"] == "ON_TIME"

        result = await db_session.execute(
            select(RequestHistory)
            .where(RequestHistory.request_id == uuid.UUID(created["id"]))
            .order_by(RequestHistory.created_at)
        )
        history = [(h.field, h.old_value, h.new_value) for h in result.scalars().all()]
        assert history == [
            ("status", "NEW", "IN_REVIEW"),
            ("status", "IN_REVIEW", "DONE"),
        ]

    async def test_priority_change_recomputes_deadline(
        self, client: AsyncClient, admin_headers: dict
    ):
        created = (await client.post("/api/requests", json=request_payload())).json()

        response = await client.patch(
            f"/api/requests/{created['id']}",
            headers=admin_headers,
            json={"priority": "URGENT"},
        )
        data = response.json()
        assert data["priority"] == "URGENT"
        assert data["hours_left"] <= 4.0

    async def test_employee_cannot_update(
        self, client: AsyncClient, employee_headers: dict
    ):
        created = (await client.post("/api/requests", json=request_payload())).json()
        response = await client.patch(
            f"/api/requests/{created['id']}",
            headers=employee_headers,
            json={"status": "SPAM"},
        )
        assert response.status_code == 403

    async def test_missing_request(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(f"/api/requests/{uuid.uuid4()}", headers=admin_headers)
        assert response.status_code == 404


class TestRequestSlaUpdate:
    """Tests for POST /api/requests/sla/update."""

    async def test_marks_breached_and_at_risk(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
    ):
        now = datetime.now(timezone.utc)
        breached = Request(
            id=uuid.uuid4(),
            organization="Org A",
            contact_name="A",
            description="late",
            status=RequestStatus.NEW,
            sla_deadline=now - timedelta(hours=1),
            sla_status=SlaStatus.ON_TIME,
        )
        at_risk = Request(
            id=uuid.uuid4(),
            organization="Org B",
            contact_name="B",
            description="soon",
            status=RequestStatus.IN_REVIEW,
            sla_deadline=now + timedelta(hours=1),
            sla_status=SlaStatus.ON_TIME,
        )
        closed = Request(
            id=uuid.uuid4(),
            organization="Org C",
            contact_name="C",
            description="spam",
            status=RequestStatus.SPAM,
            sla_deadline=now - timedelta(days=1),
            sla_status=SlaStatus.ON_TIME,
        )
        db_session.add_all([breached, at_risk, closed])
        await db_session.commit()

        response = await client.post("/api/requests/sla/update", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 2, "checked": 2}

        assert breached.sla_status == SlaStatus.BREACHED
        assert at_risk.sla_status == SlaStatus.AT_RISK
        assert closed.sla_status == SlaStatus.ON_TIME
