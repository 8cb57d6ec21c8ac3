"""Tests for event CRUD, filtering and sorting."""
import pytest
from httpx import AsyncClient

from tests.conftest import ADMIN_HEADERS, AUTH_HEADERS, AUTH_HEADERS_USER2, create_event, event_payload


@pytest.mark.asyncio
async def test_create_hourly_event(client: AsyncClient):
    resp = await client.post(
        "/api/events",
        json=event_payload(duration_hours=1.5, rate=300, notes="first session"),
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert isinstance(data["id"], int)
    assert data["user_id"] == "test-user-1"
    assert data["total_amount"] == 450.0
    assert data["end_time"] == "11:30"
    assert data["payment_status"] == "unpaid"
    assert data["source"] == "web"
    assert data["notes"] == "first session"


@pytest.mark.asyncio
async def test_create_fixed_event_bills_rate(client: AsyncClient):
    data = await create_event(client, rate_type="fixed", rate=1200, duration_hours=3)
    assert data["total_amount"] == 1200.0


@pytest.mark.asyncio
async def test_client_supplied_total_is_ignored(client: AsyncClient):
    data = await create_event(client, total_amount=99999, duration_hours=2, rate=100)
    assert data["total_amount"] == 200.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"client_name": ""},
        {"event_type": "   "},
        {"duration_hours": 0},
        {"duration_hours": -1},
        {"rate": -5},
        {"start_time": "25:00"},
        {"rate_type": "daily"},
    ],
)
async def test_create_event_validation(client: AsyncClient, overrides):
    resp = await client.post("/api/events", json=event_payload(**overrides), headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_recomputes_total(client: AsyncClient):
    event = await create_event(client, duration_hours=2, rate=300)

    resp = await client.patch(
        f"/api/events/{event['id']}", json={"duration_hours": 3}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_amount"] == 900.0
    assert data["end_time"] == "13:00"
    assert data["client_name"] == "Dana Levi"

    resp = await client.patch(
        f"/api/events/{event['id']}",
        json={"rate_type": "fixed", "rate": 700},
        headers=AUTH_HEADERS,
    )
    assert resp.json()["total_amount"] == 700.0


@pytest.mark.asyncio
async def test_update_can_clear_notes(client: AsyncClient):
    event = await create_event(client, notes="bring slides")

    resp = await client.patch(
        f"/api/events/{event['id']}", json={"notes": None}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["notes"] is None


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient):
    event = await create_event(client)

    resp = await client.delete(f"/api/events/{event['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"/api/events/{event['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_mark_paid_and_unpaid(client: AsyncClient):
    event = await create_event(client)

    resp = await client.post(f"/api/events/{event['id']}/mark-paid", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "paid"

    resp = await client.post(f"/api/events/{event['id']}/mark-unpaid", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "unpaid"


@pytest.mark.asyncio
async def test_list_returns_only_own_events(client: AsyncClient):
    await create_event(client, client_name="Mine")
    await create_event(client, headers=AUTH_HEADERS_USER2, client_name="Theirs")

    resp = await client.get("/api/events", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert [e["client_name"] for e in resp.json()] == ["Mine"]

    resp = await client.get("/api/events", headers=ADMIN_HEADERS)
    assert {e["client_name"] for e in resp.json()} == {"Mine", "Theirs"}


@pytest.mark.asyncio
async def test_list_default_order_is_date_desc(client: AsyncClient):
    await create_event(client, date="2026-03-01", client_name="A")
    await create_event(client, date="2026-03-20", client_name="B")
    await create_event(client, date="2026-03-10", client_name="C")

    resp = await client.get("/api/events", headers=AUTH_HEADERS)
    assert [e["client_name"] for e in resp.json()] == ["B", "C", "A"]


@pytest.mark.asyncio
async def test_list_sort_by_total_ascending(client: AsyncClient):
    await create_event(client, client_name="Big", rate=1000)
    await create_event(client, client_name="Small", rate=10)

    resp = await client.get(
        "/api/events", params={"sort": "total_amount", "order": "asc"}, headers=AUTH_HEADERS
    )
    assert [e["client_name"] for e in resp.json()] == ["Small", "Big"]


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort(client: AsyncClient):
    resp = await client.get("/api/events", params={"sort": "user_id"}, headers=AUTH_HEADERS)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_filters(client: AsyncClient):
    first = await create_event(client, date="2026-02-27", client_name="Dana Levi")
    await create_event(client, date="2026-03-05", client_name="Yossi Cohen")
    await create_event(client, date="2026-03-15", client_name="dana levi workshop")
    await client.post(f"/api/events/{first['id']}/mark-paid", headers=AUTH_HEADERS)

    resp = await client.get(
        "/api/events",
        params={"date_from": "2026-03-01", "date_to": "2026-03-31"},
        headers=AUTH_HEADERS,
    )
    assert {e["client_name"] for e in resp.json()} == {"Yossi Cohen", "dana levi workshop"}

    resp = await client.get("/api/events", params={"client_name": "DANA"}, headers=AUTH_HEADERS)
    assert len(resp.json()) == 2

    resp = await client.get("/api/events", params={"payment_status": "paid"}, headers=AUTH_HEADERS)
    assert [e["id"] for e in resp.json()] == [first["id"]]


@pytest.mark.asyncio
async def test_list_rejects_inverted_date_range(client: AsyncClient):
    resp = await client.get(
        "/api/events",
        params={"date_from": "2026-04-01", "date_to": "2026-03-01"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 400
