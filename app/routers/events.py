"""
Event CRUD endpoints.

Route summary
-------------
GET    /api/events                      - list visible events (filters + sort)
POST   /api/events                      - create event
GET    /api/events/{event_id}           - event detail
PATCH  /api/events/{event_id}           - partial update (total recomputed)
DELETE /api/events/{event_id}           - delete event
POST   /api/events/{event_id}/mark-paid - set payment_status=paid
POST   /api/events/{event_id}/mark-unpaid
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_event, get_current_profile
from app.models.database_models import Event, PaymentStatus, Profile
from app.models.schemas import (
    EventCreate,
    EventResponse,
    EventUpdate,
    PaymentStatusSchema,
)
from app.services import event_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[EventResponse])
async def list_events(
    sort: str = Query("date", description="Column to sort by"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    payment_status: Optional[PaymentStatusSchema] = None,
    client_name: Optional[str] = Query(None, description="Case-insensitive substring"),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> List[EventResponse]:
    """List the events the caller may see. Admins see everyone's."""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from must not be after date_to.",
        )
    try:
        events = await event_service.list_events(
            db,
            profile,
            sort=sort,
            order=order,
            date_from=date_from,
            date_to=date_to,
            payment_status=payment_status.value if payment_status else None,
            client_name=client_name.strip() if client_name else None,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return [event_service.to_event_response(e) for e in events]


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreate,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    event = await event_service.create_event(db, profile.id, body)
    return event_service.to_event_response(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event: Event = Depends(get_authorized_event)) -> EventResponse:
    return event_service.to_event_response(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    body: EventUpdate,
    event: Event = Depends(get_authorized_event),
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    """Apply the fields present in the body; total_amount is recomputed."""
    event = await event_service.update_event(db, event, body)
    return event_service.to_event_response(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event: Event = Depends(get_authorized_event),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await event_service.delete_event(db, event)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _set_payment_status(db: AsyncSession, event: Event, value: PaymentStatus) -> EventResponse:
    event.payment_status = value
    await db.flush()
    logger.info("Event id=%d marked %s", event.id, value.value)
    return event_service.to_event_response(event)


@router.post("/{event_id}/mark-paid", response_model=EventResponse)
async def mark_paid(
    event: Event = Depends(get_authorized_event),
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    return await _set_payment_status(db, event, PaymentStatus.PAID)


@router.post("/{event_id}/mark-unpaid", response_model=EventResponse)
async def mark_unpaid(
    event: Event = Depends(get_authorized_event),
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    return await _set_payment_status(db, event, PaymentStatus.UNPAID)
