"""Tests for the admin user-management endpoints."""
import pytest
from httpx import AsyncClient

from tests.conftest import ADMIN_HEADERS, AUTH_HEADERS, AUTH_HEADERS_USER2


@pytest.mark.asyncio
async def test_non_admin_cannot_list_users(client: AsyncClient):
    resp = await client.get("/api/admin/users", headers=AUTH_HEADERS)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_lists_users_with_counts(client: AsyncClient):
    await client.get("/api/me", headers=AUTH_HEADERS)
    await client.get("/api/me", headers=AUTH_HEADERS_USER2)

    resp = await client.get("/api/admin/users", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert data["admin_count"] == 1
    assert data["user_count"] == 2
    assert {u["id"] for u in data["users"]} == {"test-user-1", "test-user-2", "admin-user"}


@pytest.mark.asyncio
async def test_admin_promotes_user(client: AsyncClient):
    await client.get("/api/me", headers=AUTH_HEADERS)

    resp = await client.patch(
        "/api/admin/users/test-user-1/role", json={"role": "admin"}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["is_admin"] is True

    # promoted user now passes the admin gate
    resp = await client.get("/api/admin/users", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["admin_count"] == 2


@pytest.mark.asyncio
async def test_role_update_unknown_user(client: AsyncClient):
    resp = await client.patch(
        "/api/admin/users/nobody/role", json={"role": "admin"}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_role_update_rejects_unknown_role(client: AsyncClient):
    resp = await client.patch(
        "/api/admin/users/admin-user/role", json={"role": "owner"}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_non_admin_cannot_change_roles(client: AsyncClient):
    await client.get("/api/me", headers=AUTH_HEADERS_USER2)
    resp = await client.patch(
        "/api/admin/users/test-user-2/role", json={"role": "admin"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 403
