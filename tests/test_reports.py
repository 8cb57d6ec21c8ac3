"""Tests for the dashboard KPIs and the monthly report."""
import pytest
from httpx import AsyncClient

from app.utils.helpers import local_today
from tests.conftest import ADMIN_HEADERS, AUTH_HEADERS, AUTH_HEADERS_USER2, create_event


@pytest.mark.asyncio
async def test_dashboard_empty(client: AsyncClient):
    resp = await client.get("/api/reports/dashboard", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["scope"] == "own"
    assert data["currency"] == "ILS"
    kpis = data["kpis"]
    assert kpis["total_revenue"] == 0
    assert kpis["total_events"] == 0
    assert kpis["avg_rate"] == 0
    assert kpis["payment_rate"] == 0
    assert kpis["avg_per_event"] == 0


@pytest.mark.asyncio
async def test_dashboard_kpis(client: AsyncClient):
    paid = await create_event(client, duration_hours=2, rate=300)        # 600
    await create_event(client, rate_type="fixed", rate=400, duration_hours=2)  # 400
    await create_event(client, headers=AUTH_HEADERS_USER2, rate=1000)    # not visible
    await client.post(f"/api/events/{paid['id']}/mark-paid", headers=AUTH_HEADERS)

    resp = await client.get("/api/reports/dashboard", headers=AUTH_HEADERS)
    kpis = resp.json()["kpis"]
    assert kpis["total_revenue"] == 1000.0
    assert kpis["paid_revenue"] == 600.0
    assert kpis["unpaid_revenue"] == 400.0
    assert kpis["total_events"] == 2
    assert kpis["total_hours"] == 4.0
    assert kpis["avg_rate"] == 250.0
    assert kpis["payment_rate"] == 60.0
    assert kpis["avg_per_event"] == 500.0


@pytest.mark.asyncio
async def test_dashboard_admin_scope(client: AsyncClient):
    await create_event(client, rate=100, duration_hours=1)
    await create_event(client, headers=AUTH_HEADERS_USER2, rate=200, duration_hours=1)

    resp = await client.get("/api/reports/dashboard", headers=ADMIN_HEADERS)
    data = resp.json()
    assert data["scope"] == "all"
    assert data["kpis"]["total_revenue"] == 300.0


@pytest.mark.asyncio
async def test_monthly_report_buckets(client: AsyncClient):
    await create_event(client, date="2026-03-01", event_type="meeting", rate=100, duration_hours=1)
    await create_event(client, date="2026-03-07", event_type="lecture", rate_type="fixed", rate=500)
    await create_event(client, date="2026-03-13", event_type="meeting", rate=100, duration_hours=2)
    await create_event(client, date="2026-03-28", event_type="meeting", rate=100, duration_hours=1)
    await create_event(client, date="2026-04-01", event_type="meeting", rate=999, duration_hours=1)

    resp = await client.get(
        "/api/reports/monthly", params={"year": 2026, "month": 3}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["start_date"] == "2026-03-01"
    assert data["end_date"] == "2026-03-31"
    assert data["scope"] == "own"
    assert data["kpis"]["total_events"] == 4
    assert data["kpis"]["total_revenue"] == 900.0

    assert data["weekly_revenue"] == [
        {"week": 1, "name": "Week 1", "revenue": 100.0},
        {"week": 2, "name": "Week 2", "revenue": 700.0},
        {"week": 5, "name": "Week 5", "revenue": 100.0},
    ]
    assert data["revenue_by_event_type"] == [
        {"name": "meeting", "value": 400.0},
        {"name": "lecture", "value": 500.0},
    ]


@pytest.mark.asyncio
async def test_monthly_report_defaults_to_current_month(client: AsyncClient):
    today = local_today()
    await create_event(client, date=today.isoformat(), rate=100, duration_hours=1)

    resp = await client.get("/api/reports/monthly", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["year"] == today.year
    assert data["month"] == today.month
    assert data["kpis"]["total_events"] == 1


@pytest.mark.asyncio
async def test_monthly_report_rejects_bad_month(client: AsyncClient):
    resp = await client.get(
        "/api/reports/monthly", params={"year": 2026, "month": 13}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 422
