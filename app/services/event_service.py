"""
Event persistence helpers shared by the events router and the assistant.

Access rules live here: admins see every event, everyone else only the
events they own.  total_amount is never taken from the caller; it is
recomputed from rate_type / duration / rate on every write.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import (
    Event,
    EventSource,
    PaymentStatus,
    Profile,
    RateType,
    UserRole,
)
from app.models.schemas import EventCreate, EventResponse, EventUpdate
from app.services.kpi import SORTABLE_FIELDS, calculate_end_time, calculate_total_amount

logger = logging.getLogger(__name__)


def visible_events_query(profile: Profile) -> Select:
    """SELECT over the events *profile* is allowed to see."""
    query = select(Event)
    if profile.role != UserRole.ADMIN:
        query = query.where(Event.user_id == profile.id)
    return query


async def get_visible_event(db: AsyncSession, profile: Profile, event_id: int) -> Optional[Event]:
    result = await db.execute(visible_events_query(profile).where(Event.id == event_id))
    return result.scalar_one_or_none()


async def list_events(
    db: AsyncSession,
    profile: Profile,
    *,
    sort: str = "date",
    order: str = "desc",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    payment_status: Optional[str] = None,
    client_name: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Event]:
    if sort not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by '{sort}'")

    query = visible_events_query(profile)
    if date_from is not None:
        query = query.where(Event.date >= date_from)
    if date_to is not None:
        query = query.where(Event.date <= date_to)
    if payment_status:
        query = query.where(Event.payment_status == PaymentStatus(payment_status))
    if client_name:
        query = query.where(Event.client_name.ilike(f"%{client_name}%"))

    column = getattr(Event, sort)
    primary = column.asc() if order == "asc" else column.desc()
    tiebreak = Event.id.asc() if order == "asc" else Event.id.desc()
    query = query.order_by(primary, tiebreak)
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def create_event(
    db: AsyncSession,
    owner_id: str,
    data: EventCreate,
    source: EventSource = EventSource.WEB,
) -> Event:
    event = Event(
        user_id=owner_id,
        date=data.date,
        start_time=data.start_time,
        duration_hours=data.duration_hours,
        client_name=data.client_name,
        event_type=data.event_type,
        rate_type=RateType(data.rate_type.value),
        rate=data.rate,
        total_amount=calculate_total_amount(data.rate_type, data.duration_hours, data.rate),
        payment_status=PaymentStatus(data.payment_status.value),
        source=source,
        notes=data.notes or None,
        tags=data.tags,
    )
    db.add(event)
    await db.flush()
    logger.info(
        "Created event id=%d client=%r date=%s source=%s for user=%s",
        event.id, event.client_name, event.date, source.value, owner_id,
    )
    return event


async def update_event(db: AsyncSession, event: Event, data: EventUpdate) -> Event:
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "rate_type" and value is not None:
            value = RateType(value)
        elif field == "payment_status" and value is not None:
            value = PaymentStatus(value)
        elif value is None and field not in ("notes", "tags"):
            # required columns cannot be nulled out
            continue
        setattr(event, field, value)

    event.total_amount = calculate_total_amount(event.rate_type, event.duration_hours, event.rate)
    await db.flush()
    logger.info("Updated event id=%d fields=%s", event.id, sorted(changes))
    return event


async def delete_event(db: AsyncSession, event: Event) -> None:
    await db.delete(event)
    await db.flush()
    logger.info("Deleted event id=%d client=%r", event.id, event.client_name)


def to_event_response(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        user_id=event.user_id,
        date=event.date,
        start_time=event.start_time,
        end_time=calculate_end_time(event.start_time, event.duration_hours),
        duration_hours=event.duration_hours,
        client_name=event.client_name,
        event_type=event.event_type,
        rate_type=event.rate_type.value,
        rate=event.rate,
        total_amount=event.total_amount,
        payment_status=event.payment_status.value,
        source=event.source.value,
        notes=event.notes,
        tags=event.tags,
        created_at=event.created_at,
        updated_at=event.updated_at,
    )
