"""
AI assistant endpoints.

Route summary
-------------
POST /api/assistant/chat          - data-aware chat (admins may change records)
POST /api/assistant/stats         - current-month stats, optionally narrated
POST /api/assistant/parse-message - free-text message -> saved event

LLM failures are mapped onto HTTP codes here:
    rate limit -> 429, out of credits -> 402, not configured -> 503,
    anything else -> 502.
"""
from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_current_profile
from app.models.database_models import Profile
from app.models.schemas import (
    ActionResult,
    AssistantAction,
    AssistantChatRequest,
    AssistantChatResponse,
    MonthlyStats,
    ParseMessageRequest,
    ParseMessageResponse,
    StatsRequest,
    StatsResponse,
)
from app.services import event_service
from app.services.assistant_service import AssistantService
from app.services.llm_client import (
    LLMClient,
    LLMError,
    LLMNotConfiguredError,
    LLMPaymentRequiredError,
    LLMRateLimitError,
    get_llm_client,
)
from app.services.message_parser import (
    IncompleteEventError,
    InvalidEventError,
    MessageParseError,
    MessageParser,
)
from app.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_for_llm_error(exc: LLMError) -> NoReturn:
    if isinstance(exc, LLMRateLimitError):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc))
    if isinstance(exc, LLMPaymentRequiredError):
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    if isinstance(exc, LLMNotConfiguredError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The AI service is not configured.",
        )
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/chat", response_model=AssistantChatResponse)
async def chat(
    body: AssistantChatRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> AssistantChatResponse:
    """
    Answer a question about the caller's data.

    Admin replies may carry an action marker which is applied before the
    response is returned; the outcome is reported in ``action_result``.
    """
    service = AssistantService(llm)
    try:
        result = await service.chat(
            profile,
            body.message,
            [m.model_dump() for m in body.messages],
            db,
        )
    except LLMError as exc:
        logger.error("Assistant chat failed for user=%s: %s", profile.id, exc)
        _raise_for_llm_error(exc)

    return AssistantChatResponse(
        response=result.response,
        action=(
            AssistantAction(type=result.action.type, data=result.action.data)
            if result.action
            else None
        ),
        action_result=(
            ActionResult(
                type=result.action_result.type,
                applied=result.action_result.applied,
                message=result.action_result.message,
                event_id=result.action_result.event_id,
            )
            if result.action_result
            else None
        ),
    )


@router.post("/stats", response_model=StatsResponse)
async def stats(
    body: StatsRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> StatsResponse:
    service = StatsService(llm)
    try:
        result = await service.monthly_stats(profile.id, db, query=body.query)
    except LLMError as exc:
        logger.error("Stats narration failed for user=%s: %s", profile.id, exc)
        _raise_for_llm_error(exc)

    kpis = result.kpis
    return StatsResponse(
        year=result.year,
        month=result.month,
        stats=MonthlyStats(
            total_revenue=kpis.total_revenue,
            paid_revenue=kpis.paid_revenue,
            unpaid_revenue=kpis.unpaid_revenue,
            total_events=kpis.total_events,
            total_hours=kpis.total_hours,
            avg_rate=kpis.avg_rate,
        ),
        answer=result.answer,
    )


@router.post(
    "/parse-message",
    response_model=ParseMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def parse_message(
    body: ParseMessageRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ParseMessageResponse:
    """Extract an event from a free-text booking message and save it as unpaid."""
    parser = MessageParser(llm)
    try:
        event = await parser.parse_and_save(body.message, profile.id, db)
    except MessageParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except IncompleteEventError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Missing details in the message.", "missing": exc.missing},
        )
    except InvalidEventError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Some details in the message are out of range.", "invalid": exc.invalid},
        )
    except LLMError as exc:
        logger.error("Message parsing failed for user=%s: %s", profile.id, exc)
        _raise_for_llm_error(exc)

    return ParseMessageResponse(
        success=True,
        event=event_service.to_event_response(event),
        message=f"Event added: {event.client_name} - {event.date.isoformat()} at {event.start_time}",
    )
