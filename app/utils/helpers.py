"""
Common utility functions and helpers.
"""
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
import re

from app.config import settings

_CURRENCY_SYMBOLS = {"ILS": "₪", "USD": "$", "EUR": "€", "GBP": "£"}

_TIME_RE = re.compile(r"^\s*(\d{1,2})[:.](\d{2})\s*$")


def local_now() -> datetime:
    """Current time in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def local_today() -> date:
    """Today's date in the configured business timezone."""
    return local_now().date()


def format_amount(amount: float, currency: Optional[str] = None) -> str:
    """
    Format a money amount for prompts and messages.

    Args:
        amount: Amount in the configured currency
        currency: ISO code, defaults to settings.CURRENCY

    Returns:
        e.g. "1,250.00 ₪"
    """
    code = currency or settings.CURRENCY
    symbol = _CURRENCY_SYMBOLS.get(code, code)
    return f"{amount:,.2f} {symbol}"


def normalize_time(value: str) -> Optional[str]:
    """
    Normalise loose clock times ("9:30", "09.30") to HH:MM.

    Returns None when *value* is not a valid 24h time.
    """
    match = _TIME_RE.match(value or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_iso_date(value: str) -> Optional[date]:
    """Parse YYYY-MM-DD, returning None on anything else."""
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except (TypeError, ValueError):
        return None
