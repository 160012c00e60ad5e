"""
Static sportsbook reference data.

Everything here is immutable and loaded once at import:
- sharpness weights used by the consensus calculator
- display-name aliases
- operator classes (fast-moving pick'em apps, fixed-vig DFS apps, exchanges)
- staleness windows
"""
from datetime import timedelta
from typing import Optional, Tuple

# Matched-rule list: first substring hit against the book key, then the
# display name, wins. Order matters ("pick6" must precede "draftkings").
BOOK_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("pinnacle", 3.0),
    ("circa", 2.5),
    ("novig", 2.5),
    ("prophet", 2.5),
    ("betfair_ex", 2.5),
    ("betopenly", 2.5),
    ("lowvig", 2.0),
    ("bookmaker", 2.0),
    ("betonline", 1.75),
    ("rebet", 1.25),
    ("pick6", 1.0),
    ("prizepicks", 1.0),
    ("underdog", 1.0),
    ("sleeper", 1.0),
    ("dabble", 1.0),
    ("betr_us_dfs", 1.0),
    ("fliff", 1.0),
    ("draftkings", 1.5),
    ("fanduel", 1.5),
    ("betmgm", 1.5),
    ("caesars", 1.5),
    ("williamhill", 1.5),
    ("pointsbet", 1.5),
    ("betrivers", 1.5),
    ("espnbet", 1.5),
    ("fanatics", 1.5),
    ("hardrock", 1.5),
)
DEFAULT_BOOK_WEIGHT = 1.0

# Raw key or raw title -> canonical display label
BOOK_ALIASES = {
    "dabble_au": "Dabble",
    "Dabble AU": "Dabble",
    "williamhill_us": "Caesars",
    "William Hill (US)": "Caesars",
    "lowvig": "LowVig",
    "LowVig.ag": "LowVig",
    "hardrockbet": "Hard Rock",
    "Hard Rock Bet": "Hard Rock",
    "thescorebet": "TheScore",
    "theScore Bet": "TheScore",
}

# Pick'em / DFS style operators: lines move quickly, usually Over-only
FAST_MOVING_BOOKS = frozenset({
    "prizepicks", "underdog", "pick6", "draftkings_pick6", "betr_us_dfs",
    "dabble", "dabble_au", "sleeper", "fliff",
})

# Operators paying a near-fixed effective price; their legs can't be placed
# independently, so they never join a middle.
FIXED_VIG_BOOKS = frozenset({
    "prizepicks", "underdog", "pick6", "draftkings_pick6", "betr_us_dfs",
    "dabble", "dabble_au", "sleeper",
})

# Reference exchanges used as the probability baseline
EXCHANGE_BASELINE_BOOKS = ("novig", "prophetx")

# Limits or voids arbitrage action; never used as an arb leg
ARBITRAGE_EXCLUDED_BOOKS = frozenset({"prophetx"})

# Alternate lines from these operators are frequently stale or mispriced
UNRELIABLE_ALTERNATE_BOOKS = frozenset({"mybookieag"})

FAST_MOVING_STALE_AFTER = timedelta(minutes=3)
DEFAULT_STALE_AFTER = timedelta(minutes=15)


def book_weight(book_key: str, book_title: Optional[str] = None) -> float:
    """Sharpness multiplier for a book.

    Examples:
        pinnacle       → 3.0
        draftkings     → 1.5
        draftkings_pick6 → 1.0
        some_new_book  → 1.0
    """
    for candidate in (book_key, book_title):
        if not candidate:
            continue
        needle = candidate.lower().replace(" ", "")
        for pattern, weight in BOOK_WEIGHTS:
            if pattern in needle:
                return weight
    return DEFAULT_BOOK_WEIGHT


def is_fast_moving(book_key: str) -> bool:
    return (book_key or "").lower() in FAST_MOVING_BOOKS


def is_fixed_vig(book_key: str) -> bool:
    return (book_key or "").lower() in FIXED_VIG_BOOKS


def stale_after(book_key: str) -> timedelta:
    """Staleness window for a book's quotes."""
    if is_fast_moving(book_key):
        return FAST_MOVING_STALE_AFTER
    return DEFAULT_STALE_AFTER
