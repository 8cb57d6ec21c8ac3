"""
Thin client for an OpenAI-compatible ``/chat/completions`` endpoint.

All three assistant features (chat, stats narration, message parsing) go
through ``LLMClient.complete``.  Failures are raised as ``LLMError``
subclasses so routers can map them onto HTTP status codes:

    LLMNotConfiguredError    -> no API key configured
    LLMRateLimitError        -> upstream HTTP 429
    LLMPaymentRequiredError  -> upstream HTTP 402 (out of credits)
    LLMError                 -> anything else (non-200, timeout, bad body)

``parse_json_loose`` recovers a JSON value from chatty model output.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The LLM call failed or returned something unusable."""


class LLMNotConfiguredError(LLMError):
    """No API key is configured."""


class LLMRateLimitError(LLMError):
    """Upstream rejected the call with HTTP 429."""


class LLMPaymentRequiredError(LLMError):
    """Upstream rejected the call with HTTP 402."""


class LLMClient:
    """POSTs chat messages to ``{LLM_BASE_URL}/chat/completions`` via httpx."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.api_key = settings.LLM_API_KEY if api_key is None else api_key
        self.model = model or settings.LLM_MODEL
        self.timeout = httpx.Timeout(float(timeout or settings.LLM_TIMEOUT), connect=10.0)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
    ) -> str:
        """Send *messages* and return the first choice's text content."""
        if not self.is_configured:
            raise LLMNotConfiguredError("LLM_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": temperature,
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("LLM request timed out after %.0f s", self.timeout.read or 0)
            raise LLMError("LLM request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("LLM connection error: %s", exc)
            raise LLMError(f"LLM connection error: {exc}") from exc

        if resp.status_code == 429:
            logger.warning("LLM rate limit hit: %s", resp.text[:200])
            raise LLMRateLimitError("Rate limit reached, try again in a few seconds.")
        if resp.status_code == 402:
            logger.warning("LLM credits exhausted: %s", resp.text[:200])
            raise LLMPaymentRequiredError("AI credits exhausted, contact support.")
        if resp.status_code != 200:
            logger.error("LLM returned HTTP %d: %s", resp.status_code, resp.text[:300])
            raise LLMError(f"LLM API error (HTTP {resp.status_code})")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Malformed LLM response: %s", resp.text[:300])
            raise LLMError("Malformed LLM response") from exc
        return content or ""

    async def check_health(self) -> str:
        """``ok`` when an API key is set, ``not_configured`` otherwise."""
        return "ok" if self.is_configured else "not_configured"


def get_llm_client() -> LLMClient:
    """FastAPI dependency; tests override it with a canned client."""
    return LLMClient()


# ---------------------------------------------------------------------------
# Loose JSON parsing
# ---------------------------------------------------------------------------

def parse_json_loose(response: str) -> Tuple[bool, Any]:
    """
    Try multiple strategies to parse JSON from potentially messy LLM output.

    Handles:
    - Markdown code fences (```json … ```, ``` … ```)
    - Trailing commas before ] or }
    - Python-style True / False / None
    - Surrounding prose: finds the first balanced {...} or [...] block

    Returns ``(success, parsed_value)``.
    """
    if not response:
        return False, None

    text = response.strip()

    ok, val = _try_json(text)
    if ok:
        return True, val

    stripped = _strip_code_fences(text)
    if stripped != text:
        ok, val = _try_json(stripped)
        if ok:
            return True, val
        text = stripped

    ok, val = _try_json(_fix_json_issues(text))
    if ok:
        return True, val

    for open_b, close_b in (("{", "}"), ("[", "]")):
        fragment = extract_json_structure(text, open_b, close_b)
        if not fragment:
            continue
        ok, val = _try_json(fragment)
        if ok:
            return True, val
        ok, val = _try_json(_fix_json_issues(fragment))
        if ok:
            return True, val

    logger.warning("parse_json_loose: all strategies failed. Preview: %s", response[:300])
    return False, None


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _strip_code_fences(text: str) -> str:
    text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def _fix_json_issues(text: str) -> str:
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    text = re.sub(r"\bTrue\b", "true", text)
    text = re.sub(r"\bFalse\b", "false", text)
    text = re.sub(r"\bNone\b", "null", text)
    return text.strip()


def extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """First balanced open_b … close_b block in *text*, ignoring brackets inside strings."""
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""
