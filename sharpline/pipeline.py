"""
Filter pipeline: one deterministic run over an immutable feed snapshot.

    raw games → game selection → grouping (stale/invalid quotes dropped)
      → market-type filter → EV / classifiers → ordered stages → result

Every stage is a pure list-to-list function; none mutates a record an earlier
stage produced. Pick stages, in order:

    1. stale quotes          (applied while grouping)
    2. synthetic Unders      (legacy toggle, off by default)
    3. thin picks            (display book-count floor; straight/props only)
    4. unreliable alternates
    5. bet-type split        (props vs straight)
    6. excluded arb operator (arbitrage mode, best price recomputed)
    7. arbitrage ROI floor
    8. started games         (props exempt)
    9. stable sort
"""
import logging
from dataclasses import replace
from datetime import date as date_cls
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sharpline.arbitrage import find_arbitrage
from sharpline.books import ARBITRAGE_EXCLUDED_BOOKS, UNRELIABLE_ALTERNATE_BOOKS
from sharpline.errors import ConfigError
from sharpline.ev import evaluate_market, side_picks
from sharpline.exchange_edge import find_exchange_edges
from sharpline.grouper import UNDER, group_game
from sharpline.markets import is_prop, market_type_matches, resolve_sports
from sharpline.middles import find_middles
from sharpline.models import (
    BET_TYPES,
    ArbitrageOpportunity,
    Market,
    Pick,
    PipelineConfig,
    PipelineResult,
)
from sharpline.normalizer import parse_timestamp

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

def validate_config(config: PipelineConfig) -> PipelineConfig:
    """Reject configs the pipeline can't interpret; returns a normalized copy."""
    if config.bet_type not in BET_TYPES:
        raise ConfigError(f"Unknown bet type {config.bet_type!r}; expected one of {', '.join(BET_TYPES)}")
    if config.min_data_points < 0 or config.min_books < 0:
        raise ConfigError("Data-point thresholds must be non-negative")
    if config.default_side not in (0, 1):
        raise ConfigError("default_side must be 0 (first side) or 1 (second side)")
    if config.arbitrage_stake <= 0:
        raise ConfigError("arbitrage_stake must be positive")
    resolve_sports(config.sport)
    parse_date_filter(config.date)
    local_zone(config.timezone)
    books = tuple(b.strip().lower() for b in config.sportsbooks if b and b.strip())
    return replace(config, sportsbooks=books)


def parse_date_filter(value: Optional[str]) -> Optional[date_cls]:
    """``all`` (or empty) means every upcoming game; otherwise YYYY-MM-DD."""
    if not value or value == "all":
        return None
    try:
        return date_cls.fromisoformat(value)
    except ValueError:
        raise ConfigError(f"Invalid date filter {value!r}; expected 'all' or YYYY-MM-DD")


def local_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone {name!r}")


# =============================================================================
# Selection
# =============================================================================

def select_games(games: Sequence[dict], config: PipelineConfig) -> List[dict]:
    """Games matching the sport selector and local-date filter."""
    sports = resolve_sports(config.sport)
    day = parse_date_filter(config.date)
    zone = local_zone(config.timezone)

    selected = []
    for game in games:
        if sports is not None and game.get("sport_key") not in sports:
            continue
        if day is not None:
            start = parse_timestamp(game.get("commence_time"))
            if start is None or start.astimezone(zone).date() != day:
                continue
        selected.append(game)
    return selected


def filter_markets(markets: Sequence[Market], market_type: str) -> List[Market]:
    return [m for m in markets if market_type_matches(m.market_key, market_type)]


# =============================================================================
# Pick stages
# =============================================================================

def drop_synthetic_unders(picks: Sequence[Pick], suppress: bool) -> List[Pick]:
    """Stage 2: optionally drop Unders priced only by synthetic quotes."""
    if not suppress:
        return list(picks)
    return [p for p in picks if not (p.side == UNDER and p.synthetic_only)]


def drop_thin_picks(picks: Sequence[Pick], min_books: int) -> List[Pick]:
    """Stage 3: drop picks backed by fewer than ``min_books`` books."""
    if min_books <= 0:
        return list(picks)
    return [p for p in picks if p.book_count >= min_books]


def drop_unreliable_alternates(
    picks: Sequence[Pick],
    books: FrozenSet[str] = UNRELIABLE_ALTERNATE_BOOKS,
) -> List[Pick]:
    """Stage 4: alternate-market picks touching an unreliable operator."""
    return [
        p for p in picks
        if not (p.is_alternate and any(r.book_key in books for r in p.books))
    ]


def filter_bet_type(picks: Sequence[Pick], bet_type: str) -> List[Pick]:
    """Stage 5: props mode keeps props only, straight mode drops them."""
    if bet_type == "straight":
        return [p for p in picks if not p.is_prop]
    if bet_type == "props":
        return [p for p in picks if p.is_prop]
    return list(picks)


def without_books(pick: Optional[Pick], excluded: FrozenSet[str]) -> Optional[Pick]:
    """Copy of a pick with excluded books removed and the best price recomputed.

    Returns None when no book is left.
    """
    if pick is None:
        return None
    rows = tuple(r for r in pick.books if r.book_key not in excluded)
    if len(rows) == len(pick.books):
        return pick
    if not rows:
        return None
    best = rows[0]
    for row in rows[1:]:
        if row.price > best.price:
            best = row
    return replace(
        pick,
        books=rows,
        best_price=best.price,
        best_book=best.book_name,
        best_book_key=best.book_key,
        book_count=len({r.book_key for r in rows}),
        ev=best.ev if pick.ev is not None else None,
    )


def drop_excluded_operator(
    picks: Sequence[Optional[Pick]],
    excluded: FrozenSet[str] = ARBITRAGE_EXCLUDED_BOOKS,
) -> List[Optional[Pick]]:
    """Stage 6: positional, so per-side pairs stay aligned."""
    return [without_books(p, excluded) for p in picks]


def drop_low_roi(arbs: Sequence[ArbitrageOpportunity], min_roi: float) -> List[ArbitrageOpportunity]:
    """Stage 7."""
    return [a for a in arbs if a.roi >= min_roi]


def drop_started(items: Iterable, now: datetime) -> list:
    """Stage 8: anything whose game has started; props are exempt."""
    return [i for i in items if is_prop(i.market_key) or not i.game.has_started(now)]


def _pick_sort_key(pick: Pick):
    if pick.ev is not None:
        return (0, -pick.ev)
    return (1, -pick.book_count)


def sort_picks(picks: Sequence[Pick]) -> List[Pick]:
    """Stage 9: valid EV first (EV desc), then insufficient data (books desc)."""
    return sorted(picks, key=_pick_sort_key)


# =============================================================================
# Runner
# =============================================================================

def _utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _straight_picks(markets: Sequence[Market], config: PipelineConfig, now: datetime):
    picks = [p for m in markets for p in evaluate_market(m, config)]
    counts = {"evaluated": len(picks)}
    picks = drop_synthetic_unders(picks, config.suppress_synthetic_unders)
    counts["synthetic_unders"] = counts["evaluated"] - len(picks)
    before = len(picks)
    picks = drop_thin_picks(picks, config.min_books)
    counts["thin"] = before - len(picks)
    before = len(picks)
    picks = drop_unreliable_alternates(picks)
    counts["unreliable_alternates"] = before - len(picks)
    before = len(picks)
    picks = filter_bet_type(picks, config.bet_type)
    counts["bet_type"] = before - len(picks)
    before = len(picks)
    picks = drop_started(picks, now)
    counts["started"] = before - len(picks)
    return sort_picks(picks), counts


def _arbitrage(markets: Sequence[Market], config: PipelineConfig, now: datetime):
    arbs = []
    for market in markets:
        if not market.two_sided:
            continue
        first, second = drop_excluded_operator(side_picks(market, config))
        arb = find_arbitrage(first, second, config.arbitrage_stake)
        if arb is not None:
            arbs.append(arb)
    counts = {"found": len(arbs)}
    arbs = drop_low_roi(arbs, config.min_arbitrage_roi)
    counts["low_roi"] = counts["found"] - len(arbs)
    before = len(arbs)
    arbs = drop_started(arbs, now)
    counts["started"] = before - len(arbs)
    return sorted(arbs, key=lambda a: -a.roi), counts


def run_pipeline(
    games: Sequence[dict],
    config: PipelineConfig = None,
    now: datetime = None,
) -> PipelineResult:
    """
    Run the full engine over one feed snapshot.

    Args:
        games: raw game records (The Odds API v4 shape)
        config: pipeline knobs; defaults to straight bets, all sports, all dates
        now: reference instant for staleness and started-game checks

    Returns:
        PipelineResult with the list matching ``config.bet_type`` populated.

    Raises:
        ConfigError: the config can't be interpreted.
    """
    config = validate_config(config or PipelineConfig())
    now = _utc(now)

    selected = select_games(games, config)
    markets = [m for game in selected for m in group_game(game, now, config)]
    markets = filter_markets(markets, config.market_type)

    picks, arbs, middles, edges = (), (), (), ()
    if config.bet_type in ("straight", "props"):
        picks, dropped = _straight_picks(markets, config, now)
    elif config.bet_type == "arbitrage":
        arbs, dropped = _arbitrage(markets, config, now)
    elif config.bet_type == "middles":
        found = find_middles(markets, config.arbitrage_stake)
        middles = sorted(drop_started(found, now), key=lambda m: -m.gap)
        dropped = {"started": len(found) - len(middles)}
    else:
        found = [e for m in markets for e in find_exchange_edges(m, cap=config.ev_cap)]
        edges = sorted(drop_started(found, now), key=lambda e: -e.edge)
        dropped = {"started": len(found) - len(edges)}

    result = PipelineResult(
        generated_at=now,
        config=config,
        picks=tuple(picks),
        arbitrage=tuple(arbs),
        middles=tuple(middles),
        exchange_edges=tuple(edges),
        game_count=len(selected),
        market_count=len(markets),
        dropped=dropped,
    )
    logger.debug(
        f"Pipeline [{config.bet_type}]: {len(selected)}/{len(games)} games, "
        f"{len(markets)} markets, dropped={dropped}"
    )
    return result

