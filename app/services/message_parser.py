"""
Free-text ("WhatsApp message") to event parsing.

The LLM does the extraction; this module builds the prompt, recovers the
JSON it returns, fills in defaults and saves the event as an unpaid
``whatsapp``-sourced record.

Public API
----------
MessageParser.parse(message, user_id, db, today=None)          -> ParsedEvent
MessageParser.parse_and_save(message, user_id, db, today=None) -> Event
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import Event, EventSource, RateType
from app.models.schemas import EventCreate, PaymentStatusSchema, RateTypeSchema
from app.services import event_service
from app.services.llm_client import LLMClient, parse_json_loose
from app.services.settings_service import default_rate_for
from app.utils.helpers import local_today, normalize_time, parse_iso_date

logger = logging.getLogger(__name__)


class MessageParseError(Exception):
    """The LLM reply could not be turned into a JSON object."""


class IncompleteEventError(Exception):
    """The message did not contain enough detail to create an event."""

    def __init__(self, missing: List[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing details: {', '.join(missing)}")


class InvalidEventError(Exception):
    """The extracted details are present but out of range (e.g. a 30 hour meeting)."""

    def __init__(self, invalid: List[str]) -> None:
        self.invalid = invalid
        super().__init__(f"Invalid details: {', '.join(invalid)}")


@dataclasses.dataclass
class ParsedEvent:
    date: Optional[date]
    start_time: Optional[str]
    duration_hours: Optional[float]
    client_name: Optional[str]
    event_type: str
    rate: Optional[float]
    rate_type: RateType


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_PARSE_SYSTEM_PROMPT = """\
You analyse WhatsApp messages and extract meeting details from them.

Always return JSON in exactly this format:
{{
  "date": "YYYY-MM-DD",
  "start_time": "HH:MM",
  "duration_hours": number,
  "client_name": "string",
  "event_type": "string",
  "rate": number,
  "rate_type": "hourly" | "fixed"
}}

Rules:
- Convert relative dates such as "tomorrow", "Sunday" or "in a week" to an exact date
- If no pricing type is given, default to "hourly"
- If no event type is given, use "{default_event_type}"
- If something is missing, return null for that field"""

_PARSE_USER_PROMPT = """\
Today's date: {today} ({weekday})

Message to analyse:
{message}"""


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        return None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class MessageParser:
    """Turns a free-text booking message into a saved event."""

    DEFAULT_DURATION_HOURS: float = 1.0

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def parse(
        self,
        message: str,
        user_id: str,
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> ParsedEvent:
        today = today or local_today()
        messages = [
            {
                "role": "system",
                "content": _PARSE_SYSTEM_PROMPT.format(
                    default_event_type=settings.DEFAULT_EVENT_TYPE
                ),
            },
            {
                "role": "user",
                "content": _PARSE_USER_PROMPT.format(
                    today=today.isoformat(),
                    weekday=today.strftime("%A"),
                    message=message.strip(),
                ),
            },
        ]
        raw = await self._llm.complete(messages, temperature=settings.PARSE_TEMPERATURE)

        ok, data = parse_json_loose(raw)
        if not ok or not isinstance(data, dict):
            logger.warning("Could not parse LLM reply for message: %s", (raw or "")[:200])
            raise MessageParseError(
                "Could not understand the message. Try phrasing it more clearly."
            )

        return await self._normalise(data, user_id, db)

    async def parse_and_save(
        self,
        message: str,
        user_id: str,
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> Event:
        parsed = await self.parse(message, user_id, db, today=today)

        missing = [
            name
            for name in ("date", "start_time", "client_name")
            if getattr(parsed, name) is None
        ]
        if missing:
            raise IncompleteEventError(missing)

        try:
            data = EventCreate(
                date=parsed.date,
                start_time=parsed.start_time,
                duration_hours=parsed.duration_hours,
                client_name=parsed.client_name,
                event_type=parsed.event_type,
                rate_type=RateTypeSchema(parsed.rate_type.value),
                rate=parsed.rate,
                payment_status=PaymentStatusSchema.UNPAID,
            )
        except ValidationError as exc:
            invalid = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            logger.warning("Parsed event rejected for user=%s: %s", user_id, invalid)
            raise InvalidEventError(invalid) from exc
        return await event_service.create_event(db, user_id, data, source=EventSource.WHATSAPP)

    async def _normalise(self, data: Dict[str, Any], user_id: str, db: AsyncSession) -> ParsedEvent:
        rate_type_raw = str(data.get("rate_type") or "").strip().lower()
        rate_type = RateType.FIXED if rate_type_raw == RateType.FIXED.value else RateType.HOURLY

        rate = _to_float(data.get("rate"))
        if rate is None or rate < 0:
            rate = await default_rate_for(db, user_id, rate_type)

        duration = _to_float(data.get("duration_hours"))
        if duration is None or duration <= 0:
            duration = self.DEFAULT_DURATION_HOURS

        start_time = _to_text(data.get("start_time"))
        return ParsedEvent(
            date=parse_iso_date(data["date"]) if data.get("date") else None,
            start_time=normalize_time(start_time) if start_time else None,
            duration_hours=duration,
            client_name=_to_text(data.get("client_name")),
            event_type=_to_text(data.get("event_type")) or settings.DEFAULT_EVENT_TYPE,
            rate=rate,
            rate_type=rate_type,
        )
