"""
Current-month statistics for a single user, optionally narrated by the LLM.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import Event
from app.services.kpi import KPISummary, compute_kpis, month_bounds
from app.services.llm_client import LLMClient
from app.utils.helpers import format_amount, local_today

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class MonthlyStatsResult:
    """Returned by StatsService.monthly_stats."""

    year: int
    month: int
    kpis: KPISummary
    answer: Optional[str] = None


_STATS_SYSTEM_PROMPT = (
    "You answer questions about income and meetings. "
    "Give short, focused answers in {language}."
)

_STATS_USER_PROMPT = """\
This month's statistics:
- Total revenue: {total_revenue}
- Already paid: {paid_revenue}
- Awaiting payment: {unpaid_revenue}
- Number of meetings: {total_events}
- Working hours: {total_hours}

Question: {query}"""


class StatsService:
    """Aggregates the caller's own events for the current month."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def monthly_stats(
        self,
        user_id: str,
        db: AsyncSession,
        query: Optional[str] = None,
        today: Optional[date] = None,
    ) -> MonthlyStatsResult:
        """
        Compute stats for the month containing *today* (business timezone).

        When *query* is non-empty the LLM is asked to answer it from the
        stats; LLM errors propagate to the caller.
        """
        today = today or local_today()
        start, end = month_bounds(today.year, today.month)

        result = await db.execute(
            select(Event).where(
                Event.user_id == user_id,
                Event.date >= start,
                Event.date <= end,
            )
        )
        kpis = compute_kpis(result.scalars().all())
        stats = MonthlyStatsResult(year=today.year, month=today.month, kpis=kpis)

        if query and query.strip():
            stats.answer = await self._narrate(kpis, query.strip())
            logger.info("Narrated monthly stats for user=%s", user_id)

        return stats

    async def _narrate(self, kpis: KPISummary, query: str) -> str:
        messages = [
            {
                "role": "system",
                "content": _STATS_SYSTEM_PROMPT.format(language=settings.ASSISTANT_LANGUAGE),
            },
            {
                "role": "user",
                "content": _STATS_USER_PROMPT.format(
                    total_revenue=format_amount(kpis.total_revenue),
                    paid_revenue=format_amount(kpis.paid_revenue),
                    unpaid_revenue=format_amount(kpis.unpaid_revenue),
                    total_events=kpis.total_events,
                    total_hours=kpis.total_hours,
                    query=query,
                ),
            },
        ]
        answer = await self._llm.complete(messages, temperature=settings.STATS_TEMPERATURE)
        return answer.strip()
