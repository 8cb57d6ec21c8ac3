"""
Per-user settings: business name and default prices for new events.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import RateType, UserSettings
from app.models.schemas import SettingsResponse, SettingsUpdateRequest

logger = logging.getLogger(__name__)


async def get_user_settings(db: AsyncSession, user_id: str) -> Optional[UserSettings]:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    return result.scalar_one_or_none()


async def upsert_user_settings(
    db: AsyncSession, user_id: str, body: SettingsUpdateRequest
) -> UserSettings:
    """Insert or update the single settings row keyed by *user_id*."""
    row = await get_user_settings(db, user_id)
    if row is None:
        row = UserSettings(user_id=user_id)
        db.add(row)

    row.business_name = body.business_name or None
    row.default_hourly_rate = body.default_hourly_rate
    row.default_fixed_rate = body.default_fixed_rate
    await db.flush()
    logger.info("Saved settings for user=%s", user_id)
    return row


async def default_rate_for(db: AsyncSession, user_id: str, rate_type: RateType) -> float:
    """The caller's default price for *rate_type*, falling back to the global defaults."""
    row = await get_user_settings(db, user_id)
    if rate_type == RateType.FIXED:
        return row.default_fixed_rate if row else settings.DEFAULT_FIXED_RATE
    return row.default_hourly_rate if row else settings.DEFAULT_HOURLY_RATE


def to_settings_response(user_id: str, row: Optional[UserSettings]) -> SettingsResponse:
    if row is None:
        return SettingsResponse(
            user_id=user_id,
            business_name=None,
            default_hourly_rate=settings.DEFAULT_HOURLY_RATE,
            default_fixed_rate=settings.DEFAULT_FIXED_RATE,
            is_default=True,
        )
    return SettingsResponse(
        user_id=row.user_id,
        business_name=row.business_name,
        default_hourly_rate=row.default_hourly_rate,
        default_fixed_rate=row.default_fixed_rate,
        is_default=False,
        updated_at=row.updated_at,
    )
