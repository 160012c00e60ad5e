"""
Odds normalizer: validates single prices and canonicalizes book identity.

Invalid prices are never raised to the caller. They come back as None and the
quote is dropped, since partial per-book data loss is routine in the feed.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from sharpline.books import BOOK_ALIASES, stale_after

logger = logging.getLogger(__name__)

MIN_PRICE_MAGNITUDE = 100


def normalize_price(raw: Any) -> Optional[int]:
    """Parse a raw American price into a validated integer.

    Examples:
        "+120" → 120
        -110.0 → -110
        "-105.7" → -105
        "50"   → None  (|x| < 100 is not a valid American price)
        "abc"  → None
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    price = int(value)
    if abs(price) < MIN_PRICE_MAGNITUDE:
        return None
    return price


def format_american(price: Optional[int]) -> str:
    """Render a price with an explicit sign for positive values."""
    if price is None:
        return "--"
    return f"+{price}" if price > 0 else str(price)


def canonical_book_name(raw_key: str, raw_title: Optional[str] = None) -> str:
    """Stable display name for a book.

    Alias table first (by key, then title); unknown books pass through.
    """
    if raw_key in BOOK_ALIASES:
        return BOOK_ALIASES[raw_key]
    if raw_title and raw_title in BOOK_ALIASES:
        return BOOK_ALIASES[raw_title]
    return raw_title or raw_key


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_stale(book_key: str, last_update: Any, now: datetime) -> bool:
    """True when a book's quote is older than its class window.

    A missing or unparseable timestamp is treated as fresh.
    """
    updated = parse_timestamp(last_update)
    if updated is None:
        return False
    return now - updated > stale_after(book_key)
