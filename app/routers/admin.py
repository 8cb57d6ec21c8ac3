"""
Profile and user-management endpoints.

Route summary
-------------
GET   /api/me                         - caller's profile (any user)
GET   /api/admin/users                - all profiles, newest first (admin)
PATCH /api/admin/users/{user_id}/role - change a profile's role (admin)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_current_profile, is_admin, require_admin
from app.models.database_models import Profile, UserRole
from app.models.schemas import (
    AdminUsersResponse,
    ProfileResponse,
    RoleUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()
me_router = APIRouter()


def _to_profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role.value,
        is_admin=is_admin(profile),
        created_at=profile.created_at,
    )


@me_router.get("/me", response_model=ProfileResponse)
async def get_me(profile: Profile = Depends(get_current_profile)) -> ProfileResponse:
    return _to_profile_response(profile)


@router.get("/users", response_model=AdminUsersResponse)
async def list_users(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminUsersResponse:
    result = await db.execute(
        select(Profile).order_by(Profile.created_at.desc(), Profile.id.asc())
    )
    profiles = result.scalars().all()
    admin_count = sum(1 for p in profiles if p.role == UserRole.ADMIN)

    return AdminUsersResponse(
        users=[_to_profile_response(p) for p in profiles],
        total=len(profiles),
        admin_count=admin_count,
        user_count=len(profiles) - admin_count,
    )


@router.patch("/users/{user_id}/role", response_model=ProfileResponse)
async def update_role(
    user_id: str,
    body: RoleUpdateRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found.",
        )

    profile.role = UserRole(body.role.value)
    await db.flush()
    logger.info("Admin %s set role of %s to %s", admin.id, user_id, profile.role.value)
    return _to_profile_response(profile)
