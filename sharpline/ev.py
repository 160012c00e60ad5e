"""
Edge/EV engine.

For each side of a Market: best obtainable price, weighted consensus
probability, and edge = (p_fair - p_best) / p_best x 100, capped at ±50%.
Two-sided markets resolve to one side through an explicit SideCandidate
comparison.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sharpline.edge_math import (
    basic_no_vig,
    implied_probability,
    probability_to_american,
    weighted_consensus,
)
from sharpline.markets import market_label
from sharpline.models import BookLine, Market, Pick, PipelineConfig, Quote

logger = logging.getLogger(__name__)

EV_CAP = 50.0


def best_price(quotes: Sequence[Quote]) -> Optional[Quote]:
    """Quote with the highest signed American price (first seen wins ties).

    Examples:
        [-150, -140]  → -140
        [+120, -105]  → +120
    """
    best = None
    for quote in quotes:
        if best is None or quote.price > best.price:
            best = quote
    return best


def edge_percent(p_fair: float, price: int) -> float:
    """Edge of a price against a fair probability, in percent."""
    p_best = implied_probability(price)
    if p_best <= 0:
        return 0.0
    return (p_fair - p_best) / p_best * 100


def cap_ev(value: float, cap: float = EV_CAP) -> float:
    """Clamp EV to ±cap; larger values are treated as data artifacts."""
    return max(-cap, min(cap, value))


def effective_min_quotes(config: PipelineConfig) -> int:
    """Consensus minimum, relaxed when the caller restricted the book set."""
    if config.sportsbooks:
        return max(1, min(config.min_data_points, len(config.sportsbooks)))
    return max(1, config.min_data_points)


@dataclass(frozen=True)
class SideCandidate:
    """One side of a market with its own sufficiency flag and edge."""
    side: str
    quotes: Tuple[Quote, ...]
    best: Quote
    consensus: Optional[float]
    ev: Optional[float]

    @property
    def sufficient(self) -> bool:
        return self.consensus is not None


def build_candidate(market: Market, side: str, min_quotes: int, cap: float = EV_CAP) -> Optional[SideCandidate]:
    quotes = market.aligned_quotes(side)
    best = best_price(quotes)
    if best is None:
        return None
    consensus = weighted_consensus(quotes, min_quotes)
    ev = None
    if consensus is not None:
        ev = round(cap_ev(edge_percent(consensus, best.price), cap), 2)
    return SideCandidate(side=side, quotes=quotes, best=best, consensus=consensus, ev=ev)


def choose_side(
    first: Optional[SideCandidate],
    second: Optional[SideCandidate],
    default_side: int = 0,
) -> Optional[SideCandidate]:
    """
    Pick one side of a two-sided market.

    - both sufficient: the strictly higher EV wins, a tie keeps the first side
    - one sufficient: that side
    - neither: ``default_side`` (0 = first/Over, 1 = second/Under); this is an
      arbitrary tie-break, not a signal
    """
    if first is None or second is None:
        return first or second
    if first.sufficient and second.sufficient:
        return second if second.ev > first.ev else first
    if first.sufficient:
        return first
    if second.sufficient:
        return second
    return second if default_side == 1 else first


def _book_lines(candidate: SideCandidate, cap: float) -> Tuple[BookLine, ...]:
    rows = []
    for q in candidate.quotes:
        ev = None
        if candidate.consensus is not None:
            ev = round(cap_ev(edge_percent(candidate.consensus, q.price), cap), 2)
        rows.append(BookLine(
            book_key=q.book_key,
            book_name=q.book_name,
            price=q.price,
            line=q.line,
            implied_probability=implied_probability(q.price),
            ev=ev,
            synthetic=q.synthetic,
        ))
    return tuple(rows)


def build_pick(
    market: Market,
    candidate: SideCandidate,
    opposite: Optional[SideCandidate] = None,
    cap: float = EV_CAP,
) -> Pick:
    """Assemble the Pick for a chosen side.

    ``average_price`` is the raw weighted consensus of every aligned quote;
    ``fair_price`` removes the margin against the opposite side's consensus.
    """
    average_prob = weighted_consensus(candidate.quotes, 1)
    fair_prob = None
    if opposite is not None:
        opposite_prob = weighted_consensus(opposite.quotes, 1)
        if average_prob is not None and opposite_prob is not None:
            fair_prob, _ = basic_no_vig(average_prob, opposite_prob)

    return Pick(
        game=market.game,
        market_key=market.market_key,
        market_kind=market.kind,
        market_label=market_label(market.market_key),
        side=candidate.side,
        line=market.line_for(candidate.side),
        best_price=candidate.best.price,
        best_book=candidate.best.book_name,
        best_book_key=candidate.best.book_key,
        book_count=len({q.book_key for q in candidate.quotes}),
        books=_book_lines(candidate, cap),
        average_price=probability_to_american(average_prob),
        fair_price=probability_to_american(fair_prob),
        fair_probability=fair_prob,
        ev=candidate.ev,
        player=market.player,
        synthetic_only=all(q.synthetic for q in candidate.quotes),
    )


def side_candidates(market: Market, config: PipelineConfig) -> List[Optional[SideCandidate]]:
    min_quotes = effective_min_quotes(config)
    return [build_candidate(market, side, min_quotes, config.ev_cap) for side in market.sides]


def side_picks(market: Market, config: PipelineConfig) -> List[Optional[Pick]]:
    """One Pick per side (None where a side has no aligned quotes)."""
    candidates = side_candidates(market, config)
    picks = []
    for index, candidate in enumerate(candidates):
        if candidate is None:
            picks.append(None)
            continue
        opposite = None
        if len(candidates) == 2:
            opposite = candidates[1 - index]
        picks.append(build_pick(market, candidate, opposite, config.ev_cap))
    return picks


def evaluate_market(market: Market, config: PipelineConfig = None) -> List[Pick]:
    """Picks for a market: the better side of a two-sided market, every
    priced side of a multi-way market."""
    if config is None:
        config = PipelineConfig()
    candidates = side_candidates(market, config)

    if len(candidates) == 2:
        chosen = choose_side(candidates[0], candidates[1], config.default_side)
        if chosen is None:
            return []
        opposite = candidates[1] if chosen is candidates[0] else candidates[0]
        return [build_pick(market, chosen, opposite, config.ev_cap)]

    return [build_pick(market, c, None, config.ev_cap) for c in candidates if c is not None]
