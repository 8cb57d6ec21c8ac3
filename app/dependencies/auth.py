"""
Authentication dependencies for FastAPI routes.

Extracts user identity from the X-User-Id header (set by the web frontend /
auth proxy) and loads the matching profile.  Admins see every event; other
users only their own.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.models.database_models import Event, Profile, UserRole
from app.services.event_service import get_visible_event

logger = logging.getLogger(__name__)


async def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> str:
    """Extract the authenticated user ID from the request header. Raises 401 if empty."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    return x_user_id.strip()


async def _find_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Ensure the caller has a profile row. Creates one on first sight.

    Two first requests from the same user can race to insert the row; the
    loser rolls back and loads the winner's profile.  The lookup is the
    first query of the request, so the rollback discards nothing else.
    """
    profile = await _find_profile(db, user_id)

    if profile is None:
        email = x_user_email or f"{user_id}@tally.local"
        role = UserRole.ADMIN if email.lower() in settings.get_admin_emails() else UserRole.USER
        profile = Profile(
            id=user_id,
            email=email,
            full_name=x_user_name,
            role=role,
        )
        db.add(profile)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.info("Profile %s was created concurrently; reloading", user_id)
            profile = await _find_profile(db, user_id)
            if profile is None:
                raise
        else:
            logger.info("Created profile: id=%s email=%s role=%s", user_id, email, role.value)

    return profile


def is_admin(profile: Profile) -> bool:
    return profile.role == UserRole.ADMIN


async def require_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Allow only admins through. Raises 403 otherwise."""
    if not is_admin(profile):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can access this resource.",
        )
    return profile


async def get_authorized_event(
    event_id: int,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> Event:
    """
    Return the event if the caller may see it (owner or admin).
    Other users' events are reported as 404.
    """
    event = await get_visible_event(db, profile, event_id)
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found.",
        )
    return event
