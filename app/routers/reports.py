"""
Dashboard KPIs and monthly report data.

Both endpoints aggregate over the events the caller may see: admins get
the whole business (scope ``all``), everyone else their own (``own``).
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies.auth import get_current_profile, is_admin
from app.models.database_models import Profile
from app.models.schemas import (
    DashboardResponse,
    EventTypeRevenueItem,
    KPIResponse,
    MonthlyReportResponse,
    WeeklyRevenueItem,
)
from app.services import event_service
from app.services.kpi import compute_kpis, month_bounds, revenue_by_event_type, revenue_by_week
from app.utils.helpers import local_today

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """KPI cards over every visible event."""
    events = await event_service.list_events(db, profile)
    kpis = compute_kpis(events)
    return DashboardResponse(
        kpis=KPIResponse(**kpis.as_dict()),
        currency=settings.CURRENCY,
        scope="all" if is_admin(profile) else "own",
    )


@router.get("/monthly", response_model=MonthlyReportResponse)
async def monthly_report(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> MonthlyReportResponse:
    """
    KPIs, weekly revenue and revenue per event type for one month.

    Defaults to the current month in the business timezone.
    """
    today = local_today()
    year = year or today.year
    month = month or today.month
    start, end = month_bounds(year, month)

    events = await event_service.list_events(
        db, profile, sort="date", order="asc", date_from=start, date_to=end
    )
    kpis = compute_kpis(events)
    logger.info(
        "Monthly report %04d-%02d for user=%s: %d events", year, month, profile.id, len(events)
    )

    return MonthlyReportResponse(
        year=year,
        month=month,
        start_date=start,
        end_date=end,
        scope="all" if is_admin(profile) else "own",
        currency=settings.CURRENCY,
        kpis=KPIResponse(**kpis.as_dict()),
        weekly_revenue=[
            WeeklyRevenueItem(week=week, name=f"Week {week}", revenue=revenue)
            for week, revenue in revenue_by_week(events)
        ],
        revenue_by_event_type=[
            EventTypeRevenueItem(name=name, value=value)
            for name, value in revenue_by_event_type(events)
        ],
    )
