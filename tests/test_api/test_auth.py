"""Tests for authentication API endpoints."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.auth import create_access_token, create_refresh_token


class TestLogin:
    """Tests for POST /api/auth/login."""

    async def test_login_success(self, client: AsyncClient, employee: User):
        response = await client.post(
            "/api/auth/login",
            data={
                "username": employee.email,
                "password": "TestPass123",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    async def test_login_wrong_password(self, client: AsyncClient, employee: User):
        response = await client.post(
            "/api/auth/login",
            data={
                "username": employee.email,
                "password": "WrongPass123",
            },
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    async def test_login_nonexistent_user(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/login",
            data={
                "username": "nobody@example.com",
                "password": "SomePass123",
            },
        )
        assert response.status_code == 401

    async def test_login_disabled(
        self, client: AsyncClient, db_session: AsyncSession, employee: User
    ):
        employee.can_login = False
        await db_session.commit()

        response = await client.post(
            "/api/auth/login",
            data={
                "username": employee.email,
                "password": "TestPass123",
            },
        )
        assert response.status_code == 401
        assert "disabled" in response.json()["error"]


class TestRefreshToken:
    """Tests for POST /api/auth/refresh."""

    async def test_refresh_success(self, client: AsyncClient, employee: User):
        response = await client.post(
            "/api/auth/refresh",
            json={"refresh_token": create_refresh_token(employee)},
        )
        assert response.status_code == 200
        assert "access_token" in response.json()

    async def test_refresh_with_access_token(self, client: AsyncClient, employee: User):
        access = create_access_token(employee)
        response = await client.post(
            "/api/auth/refresh",
            json={"refresh_token": access},
        )
        assert response.status_code == 401

    async def test_refresh_revoked(
        self, client: AsyncClient, db_session: AsyncSession, employee: User
    ):
        token = create_refresh_token(employee)
        employee.token_version += 1
        await db_session.commit()

        response = await client.post("/api/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 401
        assert response.json()["error"] == "Token has been revoked"

    async def test_refresh_refused_after_bulk_role_change(
        self, client: AsyncClient, employee: User, admin_headers: dict
    ):
        token = create_refresh_token(employee)

        response = await client.post(
            "/api/users/bulk",
            headers=admin_headers,
            json={"ids": [str(employee.id)], "action": "role", "value": "ADMIN"},
        )
        assert response.status_code == 200

        response = await client.post("/api/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"] == "Token has been revoked"


class TestGetMe:
    """Tests for GET /api/auth/me."""

    async def test_get_me(self, client: AsyncClient, employee: User, employee_headers: dict):
        response = await client.get("/api/auth/me", headers=employee_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == employee.email
        assert data["role"] == "EMPLOYEE"
        assert data["can_login"] is True

    async def test_get_me_no_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    async def test_get_me_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/auth/me",
            headers={"Authorization": "Bearer invalid_token"},
        )
        assert response.status_code == 401

    async def test_get_me_after_token_version_bump(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        employee: User,
        employee_headers: dict,
    ):
        employee.token_version += 1
        await db_session.commit()

        response = await client.get("/api/auth/me", headers=employee_headers)
        assert response.status_code == 401
