"""
KPI and report aggregation over event lists.

Pure functions only: callers load the events (already filtered by the
caller's access rules) and hand them in.

Public API
----------
calculate_total_amount(rate_type, duration_hours, rate) -> float
calculate_end_time(start_time, duration_hours)          -> "HH:MM"
compute_kpis(events)                                    -> KPISummary
revenue_by_event_type(events)                           -> List[Tuple[str, float]]
revenue_by_week(events)                                 -> List[Tuple[int, float]]
month_bounds(year, month)                               -> (first_day, last_day)
sort_events(events, field, direction)                   -> List[event]
"""
from __future__ import annotations

import calendar
import dataclasses
from datetime import date
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from app.models.database_models import PaymentStatus, RateType

SORTABLE_FIELDS = frozenset({
    "date",
    "start_time",
    "duration_hours",
    "client_name",
    "event_type",
    "total_amount",
    "payment_status",
})


@dataclasses.dataclass
class KPISummary:
    """Aggregates shown on the dashboard and the monthly report."""

    total_revenue: float
    paid_revenue: float
    unpaid_revenue: float
    total_events: int
    total_hours: float
    avg_rate: float
    payment_rate: float
    avg_per_event: float

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _value(enum_or_str: Any) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


def calculate_total_amount(rate_type: Any, duration_hours: float, rate: float) -> float:
    """Hourly events are billed duration * rate; fixed events bill the rate as-is."""
    if _value(rate_type) == RateType.HOURLY.value:
        return round(float(duration_hours) * float(rate), 2)
    return round(float(rate), 2)


def calculate_end_time(start_time: str, duration_hours: float) -> str:
    """Add *duration_hours* to an ``HH:MM`` start time, wrapping past midnight."""
    hours, minutes = (int(part) for part in start_time.split(":")[:2])
    total_minutes = hours * 60 + minutes + round(float(duration_hours) * 60)
    end_hours = (total_minutes // 60) % 24
    end_minutes = total_minutes % 60
    return f"{end_hours:02d}:{end_minutes:02d}"


def compute_kpis(events: Sequence[Any]) -> KPISummary:
    total_revenue = sum(float(e.total_amount) for e in events)
    paid_revenue = sum(
        float(e.total_amount)
        for e in events
        if _value(e.payment_status) == PaymentStatus.PAID.value
    )
    total_hours = sum(float(e.duration_hours) for e in events)
    total_events = len(events)

    return KPISummary(
        total_revenue=round(total_revenue, 2),
        paid_revenue=round(paid_revenue, 2),
        unpaid_revenue=round(total_revenue - paid_revenue, 2),
        total_events=total_events,
        total_hours=round(total_hours, 2),
        avg_rate=round(total_revenue / total_hours, 2) if total_hours > 0 else 0.0,
        payment_rate=round(paid_revenue / total_revenue * 100, 1) if total_revenue > 0 else 0.0,
        avg_per_event=round(total_revenue / total_events, 2) if total_events else 0.0,
    )


def revenue_by_event_type(events: Iterable[Any]) -> List[Tuple[str, float]]:
    """Revenue per event type, in the order each type first appears."""
    totals: Dict[str, float] = {}
    for event in events:
        totals[event.event_type] = totals.get(event.event_type, 0.0) + float(event.total_amount)
    return [(name, round(value, 2)) for name, value in totals.items()]


def week_of_month(day: date) -> int:
    # days 1-6 -> 1, 7-13 -> 2, 14-20 -> 3, 21-27 -> 4, 28-31 -> 5
    return day.day // 7 + 1


def revenue_by_week(events: Iterable[Any]) -> List[Tuple[int, float]]:
    """Revenue per week-of-month bucket, in the order each bucket first appears."""
    totals: Dict[int, float] = {}
    for event in events:
        week = week_of_month(event.date)
        totals[week] = totals.get(week, 0.0) + float(event.total_amount)
    return [(week, round(value, 2)) for week, value in totals.items()]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def sort_events(events: Iterable[Any], field: str = "date", direction: str = "desc") -> List[Any]:
    """
    In-memory counterpart of the ordering ``event_service.list_events`` does
    in SQL, for lists that are already loaded.  Accepts the same
    ``SORTABLE_FIELDS`` and raises ``ValueError`` for anything else.
    """
    if field not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by '{field}'")
    return sorted(
        events,
        key=lambda e: _value(getattr(e, field)),
        reverse=direction == "desc",
    )
