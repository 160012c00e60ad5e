"""
Market and sport catalogs.

Raw feed market keys look like ``spreads``, ``totals_h1``,
``alternate_spreads_q2``, ``team_totals`` or ``player_points``. This module
classifies them, expands the user-facing market-type filter into raw keys and
produces display labels.
"""
from typing import FrozenSet, Optional, Tuple

from sharpline.errors import ConfigError

STANDARD_MARKETS = ("h2h", "spreads", "totals")
SOCCER_MARKETS = ("h2h_3_way", "draw_no_bet", "btts", "double_chance")
ALTERNATE_MARKETS = ("alternate_spreads", "alternate_totals", "team_totals", "alternate_team_totals")
PROP_PREFIXES = ("player_", "batter_", "pitcher_")

PERIOD_LABELS = {
    "q1": "1st Quarter",
    "q2": "2nd Quarter",
    "q3": "3rd Quarter",
    "q4": "4th Quarter",
    "h1": "1st Half",
    "h2": "2nd Half",
    "p1": "1st Period",
    "p2": "2nd Period",
    "p3": "3rd Period",
    "1st_1_innings": "1st Inning",
    "1st_3_innings": "1st 3 Innings",
    "1st_5_innings": "1st 5 Innings",
    "1st_7_innings": "1st 7 Innings",
}
PERIOD_TAGS = tuple(PERIOD_LABELS)

BASE_LABELS = {
    "h2h": "Moneyline",
    "spreads": "Spread",
    "totals": "Total",
    "h2h_3_way": "3-Way Moneyline",
    "draw_no_bet": "Draw No Bet",
    "btts": "Both Teams to Score",
    "double_chance": "Double Chance",
    "alternate_spreads": "Alternate Spread",
    "alternate_totals": "Alternate Total",
    "team_totals": "Team Total",
    "alternate_team_totals": "Alternate Team Total",
}

# Friendly market-type filter -> (base keys, period tag)
MARKET_TYPE_FILTERS = {
    "moneyline": (("h2h",), None),
    "spread": (("spreads",), None),
    "totals": (("totals",), None),
    "alternate_spreads": (("alternate_spreads",), None),
    "alternate_totals": (("alternate_totals",), None),
    "team_totals": (("team_totals", "alternate_team_totals"), None),
    "btts": (("btts",), None),
    "draw_no_bet": (("draw_no_bet",), None),
    "1st_half": (None, "h1"),
    "2nd_half": (None, "h2"),
    "1st_quarter": (None, "q1"),
    "1st_period": (None, "p1"),
}

SPORT_ALIASES = {
    "nfl": "americanfootball_nfl",
    "ncaa-football": "americanfootball_ncaaf",
    "nba": "basketball_nba",
    "ncaa-basketball": "basketball_ncaab",
    "nhl": "icehockey_nhl",
    "mlb": "baseball_mlb",
}
SPORT_LABELS = {
    "americanfootball_nfl": "NFL",
    "americanfootball_ncaaf": "NCAA Football",
    "basketball_nba": "NBA",
    "basketball_ncaab": "NCAA Basketball",
    "icehockey_nhl": "NHL",
    "baseball_mlb": "MLB",
}
DEFAULT_SPORTS = ("americanfootball_nfl", "basketball_nba", "baseball_mlb", "icehockey_nhl")


# =============================================================================
# Classification
# =============================================================================

def is_prop(market_key: str) -> bool:
    return market_key.startswith(PROP_PREFIXES)


def split_period(market_key: str) -> Tuple[str, Optional[str]]:
    """Split a raw key into (base key, period tag).

    Examples:
        totals_h1              → ("totals", "h1")
        alternate_spreads_q2   → ("alternate_spreads", "q2")
        h2h_3_way              → ("h2h_3_way", None)
    """
    for tag in PERIOD_TAGS:
        suffix = "_" + tag
        if market_key.endswith(suffix) and len(market_key) > len(suffix):
            return market_key[:-len(suffix)], tag
    return market_key, None


def market_kind(market_key: str) -> str:
    """One of ``prop``, ``alternate``, ``period`` or ``standard``."""
    if is_prop(market_key):
        return "prop"
    base, period = split_period(market_key)
    if base in ALTERNATE_MARKETS:
        return "alternate"
    if period:
        return "period"
    return "standard"


def market_family(market_key: str) -> Tuple[str, Optional[str]]:
    """Family key shared by a market and its alternates.

    ``alternate_spreads_h1`` and ``spreads_h1`` both map to ("spreads", "h1").
    Props map to themselves.
    """
    if is_prop(market_key):
        return market_key, None
    base, period = split_period(market_key)
    if base.startswith("alternate_"):
        base = base[len("alternate_"):]
    return base, period


def line_kind(market_key: str) -> Optional[str]:
    """``spread``, ``total`` or None for markets priced without a line."""
    if is_prop(market_key):
        return "total"
    family, _ = market_family(market_key)
    if family == "spreads":
        return "spread"
    if family in ("totals", "team_totals"):
        return "total"
    return None


def market_label(market_key: str) -> str:
    """Display label for a raw market key.

    Examples:
        h2h            → MONEYLINE
        totals_q1      → 1st Quarter Total
        player_points  → Player Points
    """
    if is_prop(market_key):
        return market_key.replace("_", " ").title()
    base, period = split_period(market_key)
    label = BASE_LABELS.get(base, base.replace("_", " ").title())
    if period:
        return f"{PERIOD_LABELS[period]} {label}"
    if base in STANDARD_MARKETS:
        return label.upper()
    return label


# =============================================================================
# Filters
# =============================================================================

def market_type_matches(market_key: str, market_type: str) -> bool:
    """Whether a raw market key passes the user-facing market-type filter.

    ``all`` admits everything; a named filter expands to its base keys and
    period; anything else is compared as a raw key.
    """
    if not market_type or market_type == "all":
        return True
    if market_type not in MARKET_TYPE_FILTERS:
        return market_key == market_type
    bases, period = MARKET_TYPE_FILTERS[market_type]
    base, key_period = split_period(market_key)
    if period is not None:
        return key_period == period and not is_prop(market_key)
    return key_period is None and base in bases


def resolve_sports(selector: Optional[str]) -> Optional[FrozenSet[str]]:
    """Expand a sport selector into raw sport keys (None means all sports).

    Accepts ``all``, a raw key, a friendly alias, or a comma-joined list.
    """
    if not selector or selector.strip().lower() == "all":
        return None
    keys = set()
    for part in selector.split(","):
        part = part.strip().lower()
        if not part:
            continue
        keys.add(SPORT_ALIASES.get(part, part))
    if not keys:
        raise ConfigError(f"Empty sport selector: {selector!r}")
    return frozenset(keys)


def sport_label(sport_key: str, sport_title: Optional[str] = None) -> str:
    return SPORT_LABELS.get(sport_key, sport_title or sport_key)
