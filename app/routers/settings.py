"""
Per-user settings endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_current_profile
from app.models.database_models import Profile
from app.models.schemas import SettingsResponse, SettingsUpdateRequest
from app.services import settings_service

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> SettingsResponse:
    """Caller's settings, or the global defaults when nothing is stored."""
    row = await settings_service.get_user_settings(db, profile.id)
    return settings_service.to_settings_response(profile.id, row)


@router.put("", response_model=SettingsResponse)
async def save_settings(
    body: SettingsUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> SettingsResponse:
    row = await settings_service.upsert_user_settings(db, profile.id, body)
    return settings_service.to_settings_response(profile.id, row)
