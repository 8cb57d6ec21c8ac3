"""
AI assistant: data-aware chat with optional record mutations for admins.

Public API
----------
AssistantService.chat(profile, message, history, db) -> ChatResult
AssistantService.apply_action(action, profile, db)   -> ActionOutcome
extract_action(text)                                 -> (clean_text, ParsedAction | None)

Admins may ask the assistant to change data.  The model signals this by
appending a marker to its reply::

    [ACTION:CREATE_EVENT:{...event fields...}]
    [ACTION:UPDATE_EVENT:{"id": 12, "updates": {...}}]
    [ACTION:DELETE_EVENT:{"id": 12}]

Markers are always stripped from the visible reply; only the first one is
honoured and only for admins.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import EventSource, Profile, UserRole, UserSettings
from app.models.schemas import EventCreate, EventUpdate
from app.services import event_service
from app.services.llm_client import LLMClient, LLMNotConfiguredError, extract_json_structure
from app.utils.helpers import local_today

logger = logging.getLogger(__name__)

NOT_CONFIGURED_REPLY = "The AI service is not configured. Set LLM_API_KEY to enable it."
EMPTY_REPLY = "I could not come up with an answer."

ACTION_TYPES = frozenset({"CREATE_EVENT", "UPDATE_EVENT", "DELETE_EVENT"})


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ParsedAction:
    type: str
    data: Dict[str, Any]


@dataclasses.dataclass
class ActionOutcome:
    type: str
    applied: bool
    message: str
    event_id: Optional[int] = None


@dataclasses.dataclass
class ChatResult:
    """Returned by AssistantService.chat."""

    response: str
    action: Optional[ParsedAction]
    action_result: Optional[ActionOutcome]


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """\
You are an AI assistant for a meetings and income management system.
The system contains:
- Meetings, lectures and projects with dates, clients, pricing and payment status
- Per-user settings with default prices

Your job:
1. Answer questions about the data in the system
2. Calculate totals, dates and statistics
3. Help manage meetings and projects
{permissions}

Today's date is {today}.

Use the following data:
{context}

Answer in {language}, clearly and helpfully."""

_ADMIN_PERMISSIONS = """\
4. As an admin you can create, update and delete records. To do so, append \
exactly one marker to the end of your answer:
   [ACTION:CREATE_EVENT:{"date": "YYYY-MM-DD", "start_time": "HH:MM", \
"duration_hours": 1.5, "client_name": "...", "event_type": "...", \
"rate_type": "hourly|fixed", "rate": 300, "payment_status": "paid|unpaid"}]
   [ACTION:UPDATE_EVENT:{"id": <event id>, "updates": {...fields to change...}}]
   [ACTION:DELETE_EVENT:{"id": <event id>}]"""

_READ_ONLY_PERMISSIONS = "4. You can only read data, you cannot change it"


# ---------------------------------------------------------------------------
# Action markers
# ---------------------------------------------------------------------------

_ACTION_START_RE = re.compile(r"\[ACTION:(\w+):")
_LOOSE_MARKER_RE = re.compile(r"\[ACTION:.*?\]", re.DOTALL)


def extract_action(text: str) -> Tuple[str, Optional[ParsedAction]]:
    """
    Split model output into (reply without markers, first parsed action).

    The JSON payload is matched with a bracket counter so payloads that
    themselves contain ``]`` (e.g. tag lists) survive.  A marker whose
    payload is not a JSON object is dropped from the text but yields no
    action.
    """
    action: Optional[ParsedAction] = None
    spans: List[Tuple[int, int]] = []

    for match in _ACTION_START_RE.finditer(text):
        if spans and match.start() < spans[-1][1]:
            continue
        rest = text[match.end():]
        if not rest.lstrip().startswith("{"):
            continue
        brace = match.end() + rest.index("{")
        payload = extract_json_structure(text[brace:], "{", "}")
        if not payload:
            continue

        end = brace + len(payload)
        close = text.find("]", end)
        if close != -1 and not text[end:close].strip():
            end = close + 1
        spans.append((match.start(), end))

        if action is not None:
            continue
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Ignoring unparseable action payload: %s", payload[:200])
            continue
        if isinstance(data, dict):
            action = ParsedAction(type=match.group(1).upper(), data=data)

    clean = text
    for start, end in reversed(spans):
        clean = clean[:start] + clean[end:]
    clean = _LOOSE_MARKER_RE.sub("", clean)
    return clean.strip(), action


# ---------------------------------------------------------------------------
# AssistantService
# ---------------------------------------------------------------------------

class AssistantService:
    """Builds the data context, talks to the LLM and applies admin actions."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def chat(
        self,
        profile: Profile,
        message: str,
        history: List[Dict[str, str]],
        db: AsyncSession,
    ) -> ChatResult:
        if not self._llm.is_configured:
            return ChatResult(response=NOT_CONFIGURED_REPLY, action=None, action_result=None)

        admin = profile.role == UserRole.ADMIN
        context = await self._build_context(profile, db)
        system_prompt = _SYSTEM_PROMPT.format(
            permissions=_ADMIN_PERMISSIONS if admin else _READ_ONLY_PERMISSIONS,
            today=local_today().isoformat(),
            context=json.dumps(context, ensure_ascii=False, indent=2, default=str),
            language=settings.ASSISTANT_LANGUAGE,
        )

        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": message})

        try:
            raw = await self._llm.complete(messages, temperature=settings.CHAT_TEMPERATURE)
        except LLMNotConfiguredError:
            return ChatResult(response=NOT_CONFIGURED_REPLY, action=None, action_result=None)

        reply, action = extract_action(raw or "")
        if not admin:
            action = None

        outcome = await self.apply_action(action, profile, db) if action else None
        return ChatResult(
            response=reply or EMPTY_REPLY,
            action=action,
            action_result=outcome,
        )

    async def apply_action(
        self, action: ParsedAction, profile: Profile, db: AsyncSession
    ) -> ActionOutcome:
        """Execute an assistant-proposed mutation. Never raises for bad payloads."""
        if profile.role != UserRole.ADMIN:
            return ActionOutcome(action.type, False, "Only admins can change records.")
        if action.type not in ACTION_TYPES:
            return ActionOutcome(action.type, False, f"Unknown action '{action.type}'.")

        try:
            if action.type == "CREATE_EVENT":
                return await self._create(action.data, profile, db)
            if action.type == "UPDATE_EVENT":
                return await self._update(action.data, profile, db)
            return await self._delete(action.data, profile, db)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Assistant action %s rejected: %s", action.type, exc)
            return ActionOutcome(action.type, False, f"Invalid action data: {exc}")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _create(self, data: Dict[str, Any], profile: Profile, db: AsyncSession) -> ActionOutcome:
        payload = dict(data)
        owner_id = str(payload.pop("user_id", None) or profile.id)
        if owner_id != profile.id and await db.get(Profile, owner_id) is None:
            return ActionOutcome("CREATE_EVENT", False, f"User {owner_id} not found.")
        payload.setdefault("event_type", settings.DEFAULT_EVENT_TYPE)
        for computed in ("total_amount", "source", "id"):
            payload.pop(computed, None)

        event = await event_service.create_event(
            db, owner_id, EventCreate(**payload), source=EventSource.ASSISTANT
        )
        return ActionOutcome("CREATE_EVENT", True, "Event created.", event.id)

    async def _update(self, data: Dict[str, Any], profile: Profile, db: AsyncSession) -> ActionOutcome:
        event_id = int(data["id"]) if "id" in data else None
        if event_id is None:
            return ActionOutcome("UPDATE_EVENT", False, "Missing event id.")
        event = await event_service.get_visible_event(db, profile, event_id)
        if event is None:
            return ActionOutcome("UPDATE_EVENT", False, f"Event {event_id} not found.", event_id)

        updates = data.get("updates") or {}
        if not isinstance(updates, dict):
            raise ValueError("'updates' must be an object")
        await event_service.update_event(db, event, EventUpdate(**updates))
        return ActionOutcome("UPDATE_EVENT", True, "Event updated.", event_id)

    async def _delete(self, data: Dict[str, Any], profile: Profile, db: AsyncSession) -> ActionOutcome:
        event_id = int(data["id"]) if "id" in data else None
        if event_id is None:
            return ActionOutcome("DELETE_EVENT", False, "Missing event id.")
        event = await event_service.get_visible_event(db, profile, event_id)
        if event is None:
            return ActionOutcome("DELETE_EVENT", False, f"Event {event_id} not found.", event_id)

        await event_service.delete_event(db, event)
        return ActionOutcome("DELETE_EVENT", True, "Event deleted.", event_id)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    async def _build_context(self, profile: Profile, db: AsyncSession) -> Dict[str, Any]:
        events = await event_service.list_events(
            db, profile, sort="date", order="desc", limit=settings.CHAT_CONTEXT_EVENT_LIMIT
        )

        settings_query = select(UserSettings)
        if profile.role != UserRole.ADMIN:
            settings_query = settings_query.where(UserSettings.user_id == profile.id)
        settings_rows = (await db.execute(settings_query)).scalars().all()

        return {
            "events": [
                event_service.to_event_response(e).model_dump(mode="json") for e in events
            ],
            "settings": [
                {
                    "user_id": s.user_id,
                    "business_name": s.business_name,
                    "default_hourly_rate": s.default_hourly_rate,
                    "default_fixed_rate": s.default_fixed_rate,
                }
                for s in settings_rows
            ],
            "currentUser": {
                "id": profile.id,
                "email": profile.email,
                "isAdmin": profile.role == UserRole.ADMIN,
            },
            "currency": settings.CURRENCY,
        }
