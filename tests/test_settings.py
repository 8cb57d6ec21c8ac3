"""Tests for GET/PUT /api/settings."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2


@pytest.mark.asyncio
async def test_settings_defaults_when_unset(client: AsyncClient):
    resp = await client.get("/api/settings", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_default"] is True
    assert data["business_name"] is None
    assert data["default_hourly_rate"] == 300.0
    assert data["default_fixed_rate"] == 500.0


@pytest.mark.asyncio
async def test_settings_upsert(client: AsyncClient):
    resp = await client.put(
        "/api/settings",
        json={"business_name": "Levi Consulting", "default_hourly_rate": 350, "default_fixed_rate": 900},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["is_default"] is False

    resp = await client.put(
        "/api/settings",
        json={"business_name": "", "default_hourly_rate": 400, "default_fixed_rate": 900},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200

    resp = await client.get("/api/settings", headers=AUTH_HEADERS)
    data = resp.json()
    assert data["business_name"] is None
    assert data["default_hourly_rate"] == 400.0
    assert data["default_fixed_rate"] == 900.0


@pytest.mark.asyncio
async def test_settings_are_per_user(client: AsyncClient):
    await client.put(
        "/api/settings",
        json={"business_name": "Mine", "default_hourly_rate": 1, "default_fixed_rate": 2},
        headers=AUTH_HEADERS,
    )

    resp = await client.get("/api/settings", headers=AUTH_HEADERS_USER2)
    assert resp.json()["is_default"] is True


@pytest.mark.asyncio
async def test_settings_reject_negative_rates(client: AsyncClient):
    resp = await client.put(
        "/api/settings",
        json={"default_hourly_rate": -1, "default_fixed_rate": 500},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422
