"""
Market grouper.

Turns one game's nested bookmaker → market → outcome records into flat Market
objects ready for aggregation:

- standard and period markets: one quote per book per side, consensus line by
  mode among traditional books, off-line quotes kept but not aggregated
- alternate markets: one Market per line (and per team for team totals), with
  unreliable alternate operators removed
- player props: grouped by (player, market) regardless of line, with a
  synthetic fixed-vig Under for Over-only pick'em apps
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sharpline.books import UNRELIABLE_ALTERNATE_BOOKS, is_fast_moving
from sharpline.markets import line_kind, market_kind
from sharpline.models import Game, Market, PipelineConfig, Quote
from sharpline.normalizer import canonical_book_name, is_stale, normalize_price, parse_timestamp

logger = logging.getLogger(__name__)

OVER = "Over"
UNDER = "Under"


def parse_game(raw: dict) -> Game:
    return Game(
        id=str(raw.get("id") or ""),
        sport_key=raw.get("sport_key") or "",
        sport_title=raw.get("sport_title") or raw.get("sport_key") or "",
        home_team=raw.get("home_team") or "",
        away_team=raw.get("away_team") or "",
        commence_time=parse_timestamp(raw.get("commence_time")),
    )


def _to_line(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_quotes(
    raw_game: dict,
    now: datetime,
    allowed_books: Optional[Iterable[str]] = None,
) -> List[Quote]:
    """Flatten a raw game into validated, fresh quotes.

    Invalid prices and stale book/market records are dropped here.
    """
    allowed = {b.lower() for b in allowed_books} if allowed_books else None
    quotes = []
    invalid = stale = 0

    for bookmaker in raw_game.get("bookmakers") or []:
        book_key = (bookmaker.get("key") or "").lower()
        if not book_key:
            continue
        if allowed is not None and book_key not in allowed:
            continue
        book_name = canonical_book_name(book_key, bookmaker.get("title"))

        for market in bookmaker.get("markets") or []:
            market_key = market.get("key")
            if not market_key:
                continue
            last_update = market.get("last_update") or bookmaker.get("last_update")
            if is_stale(book_key, last_update, now):
                stale += 1
                continue
            updated = parse_timestamp(last_update)

            for outcome in market.get("outcomes") or []:
                price = normalize_price(outcome.get("price"))
                side = outcome.get("name")
                if price is None or not side:
                    invalid += 1
                    continue
                quotes.append(Quote(
                    book_key=book_key,
                    book_name=book_name,
                    market_key=market_key,
                    side=side,
                    price=price,
                    line=_to_line(outcome.get("point")),
                    participant=outcome.get("description"),
                    last_update=updated,
                ))

    if invalid or stale:
        logger.debug(
            f"Game {raw_game.get('id')}: dropped {invalid} invalid outcomes, "
            f"{stale} stale markets"
        )
    return quotes


# =============================================================================
# Helpers
# =============================================================================

def _line_key(line: float) -> float:
    return round(line, 2)


def mode_line(lines: Sequence[float]) -> Optional[float]:
    """Most frequent line; the first seen wins ties."""
    counts: Dict[float, int] = OrderedDict()
    for line in lines:
        key = _line_key(line)
        counts[key] = counts.get(key, 0) + 1
    best = None
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best, best_count = key, count
    return best


def order_sides(quotes: Sequence[Quote]) -> Tuple[str, ...]:
    """Distinct sides in feed order, with Over always ahead of Under."""
    sides = []
    for q in quotes:
        if q.side not in sides:
            sides.append(q.side)
    if OVER in sides and UNDER in sides:
        sides.remove(OVER)
        sides.insert(0, OVER)
    return tuple(sides)


def dedupe_book_side(quotes: Sequence[Quote]) -> List[Quote]:
    """Keep the first quote per (book, side, participant, line)."""
    seen = set()
    result = []
    for q in quotes:
        key = (q.book_key, q.side, q.participant, q.line)
        if key in seen:
            continue
        seen.add(key)
        result.append(q)
    return result


def _framed_line(quote: Quote, first_side: str, kind: Optional[str]) -> Optional[float]:
    """Line expressed from the first side's point of view."""
    if quote.line is None:
        return None
    if kind == "spread" and quote.side != first_side:
        return -quote.line
    return quote.line


def resolve_consensus_line(quotes: Sequence[Quote], first_side: str, kind: Optional[str]) -> Optional[float]:
    """Mode line among traditional (non-fast-moving) books, else among all."""
    if kind is None:
        return None
    traditional = [
        _framed_line(q, first_side, kind) for q in quotes
        if q.line is not None and not is_fast_moving(q.book_key)
    ]
    if traditional:
        return mode_line(traditional)
    every = [_framed_line(q, first_side, kind) for q in quotes if q.line is not None]
    return mode_line(every) if every else None


def _distinct_lines(lines: Iterable[Optional[float]]) -> Tuple[float, ...]:
    return tuple(sorted({_line_key(l) for l in lines if l is not None}))


# =============================================================================
# Per-kind grouping
# =============================================================================

def group_standard(game: Game, market_key: str, quotes: Sequence[Quote], kind: str = "standard") -> List[Market]:
    quotes = dedupe_book_side(quotes)
    if not quotes:
        return []
    sides = order_sides(quotes)
    lk = line_kind(market_key)
    consensus = resolve_consensus_line(quotes, sides[0], lk)
    return [Market(
        game=game,
        market_key=market_key,
        kind=kind,
        sides=sides,
        quotes=tuple(quotes),
        consensus_line=consensus,
        line_kind=lk,
        lines_seen=_distinct_lines(_framed_line(q, sides[0], lk) for q in quotes),
    )]


def group_alternate(game: Game, market_key: str, quotes: Sequence[Quote]) -> List[Market]:
    """One Market per line, and per team for team totals."""
    quotes = [
        q for q in dedupe_book_side(quotes)
        if q.book_key not in UNRELIABLE_ALTERNATE_BOOKS and q.line is not None
    ]
    if not quotes:
        return []
    lk = line_kind(market_key)
    first_side = order_sides(quotes)[0]

    buckets: Dict[Tuple[Optional[str], float], List[Quote]] = OrderedDict()
    for q in quotes:
        participant = q.participant if lk == "total" else None
        key = (participant, _line_key(_framed_line(q, first_side, lk)))
        buckets.setdefault(key, []).append(q)

    markets = []
    for (participant, line) in sorted(buckets, key=lambda k: (k[0] or "", k[1])):
        bucket = buckets[(participant, line)]
        sides = order_sides(bucket)
        if lk == "spread" and sides[0] != first_side:
            # Keep the first side's frame even if only the opponent quoted this line
            sides = (first_side,) + tuple(s for s in sides if s != first_side)
        markets.append(Market(
            game=game,
            market_key=market_key,
            kind="alternate",
            sides=sides,
            quotes=tuple(bucket),
            consensus_line=line,
            line_kind=lk,
            player=participant,
            lines_seen=(line,),
        ))
    return markets


def group_props(game: Game, market_key: str, quotes: Sequence[Quote], synthetic_under_price: int = -119) -> List[Market]:
    """Group prop outcomes by (player, market) regardless of line."""
    groups: Dict[Tuple[str, str], List[Quote]] = OrderedDict()
    for q in dedupe_book_side(quotes):
        if not q.participant:
            continue
        groups.setdefault((q.participant, market_key), []).append(q)

    markets = []
    for (player, key), group in groups.items():
        group = list(group) + synthesize_unders(group, synthetic_under_price)
        sides = order_sides(group)
        markets.append(Market(
            game=game,
            market_key=key,
            kind="prop",
            sides=sides,
            quotes=tuple(group),
            consensus_line=resolve_consensus_line(group, sides[0], "total"),
            line_kind="total",
            player=player,
            lines_seen=_distinct_lines(q.line for q in group),
        ))
    return markets


def synthesize_unders(quotes: Sequence[Quote], price: int = -119) -> List[Quote]:
    """Fixed-vig Under quotes for fast-moving books that only price the Over.

    Traditional books without a true Under get nothing.
    """
    has_under = {q.book_key for q in quotes if q.side == UNDER}
    synthetic = []
    for q in quotes:
        if q.side != OVER or q.book_key in has_under or not is_fast_moving(q.book_key):
            continue
        synthetic.append(Quote(
            book_key=q.book_key,
            book_name=q.book_name,
            market_key=q.market_key,
            side=UNDER,
            price=price,
            line=q.line,
            participant=q.participant,
            last_update=q.last_update,
            synthetic=True,
        ))
        has_under.add(q.book_key)
    return synthetic


def group_game(raw_game: dict, now: datetime, config: PipelineConfig = None) -> List[Market]:
    """Group one raw game into Markets (stale and invalid quotes removed)."""
    if config is None:
        config = PipelineConfig()
    game = parse_game(raw_game)
    quotes = extract_quotes(raw_game, now, config.sportsbooks or None)

    by_key: Dict[str, List[Quote]] = OrderedDict()
    for q in quotes:
        by_key.setdefault(q.market_key, []).append(q)

    markets = []
    for market_key, key_quotes in by_key.items():
        kind = market_kind(market_key)
        if kind == "prop":
            markets.extend(group_props(game, market_key, key_quotes, config.synthetic_under_price))
        elif kind == "alternate":
            markets.extend(group_alternate(game, market_key, key_quotes))
        else:
            markets.extend(group_standard(game, market_key, key_quotes, kind))
    return markets
