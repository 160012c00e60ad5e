"""
Middles classifier.

A middle is an Over at one book whose line sits strictly below an Under at a
different book, so a result landing between the two lines wins both legs.
Spreads are mapped onto the same scale using the home team's margin: home at
line h covers above -h (an Over at -h), away at line a covers below a (an
Under at a).

Stakes are split the way an arbitrage is, so either leg alone pays the same.
The worst case is that payout less the total stake; a hit collects both.
"""
from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from sharpline.arbitrage import DEFAULT_STAKE, split_stake
from sharpline.books import is_fixed_vig
from sharpline.edge_math import american_to_decimal, implied_probability
from sharpline.grouper import OVER, UNDER
from sharpline.markets import line_kind, market_family, market_label
from sharpline.models import Market, MiddleLeg, MiddleOpportunity, Quote


class Threshold(NamedTuple):
    line: float
    is_over: bool
    quote: Quote


def _family_key(family: Tuple[str, Optional[str]]) -> str:
    base, period = family
    return f"{base}_{period}" if period else base


def to_threshold(quote: Quote, market: Market) -> Optional[Threshold]:
    """Place a quote on the Over/Under scale; None when it has no line."""
    if quote.line is None:
        return None
    kind = line_kind(quote.market_key)
    if kind == "spread":
        if quote.side == market.game.home_team:
            return Threshold(-quote.line, True, quote)
        if quote.side == market.game.away_team:
            return Threshold(quote.line, False, quote)
        return None
    if kind == "total":
        if quote.side == OVER:
            return Threshold(quote.line, True, quote)
        if quote.side == UNDER:
            return Threshold(quote.line, False, quote)
    return None


def collect_thresholds(markets: Sequence[Market]) -> List[Threshold]:
    """All (line, book, is_over) triples from independently placeable quotes."""
    result = []
    for market in markets:
        for quote in market.quotes:
            if quote.synthetic or is_fixed_vig(quote.book_key):
                continue
            threshold = to_threshold(quote, market)
            if threshold is not None:
                result.append(threshold)
    return result


def widest_middle(thresholds: Sequence[Threshold]) -> Optional[Tuple[Threshold, Threshold]]:
    """Over/Under pair from different books with the largest positive gap.

    The first pair found wins ties.
    """
    overs = [t for t in thresholds if t.is_over]
    unders = [t for t in thresholds if not t.is_over]
    best = None
    best_gap = 0.0
    for over in overs:
        for under in unders:
            if over.quote.book_key == under.quote.book_key:
                continue
            gap = under.line - over.line
            if gap > best_gap:
                best, best_gap = (over, under), gap
    return best


def _leg(threshold: Threshold, stake: float) -> MiddleLeg:
    q = threshold.quote
    return MiddleLeg(
        book_key=q.book_key,
        book_name=q.book_name,
        side=q.side,
        line=threshold.line,
        quoted_line=q.line,
        price=q.price,
        stake=stake,
        payout=stake * american_to_decimal(q.price),
    )


def find_middles(markets: Sequence[Market], total_stake: float = DEFAULT_STAKE) -> List[MiddleOpportunity]:
    """Widest middle per (game, market family, player)."""
    groups: Dict[tuple, List[Market]] = OrderedDict()
    for market in markets:
        if line_kind(market.market_key) is None:
            continue
        key = (market.game.id, market_family(market.market_key), market.player)
        groups.setdefault(key, []).append(market)

    middles = []
    for (_, family, player), group in groups.items():
        pair = widest_middle(collect_thresholds(group))
        if pair is None:
            continue
        over, under = pair
        split = split_stake(
            implied_probability(over.quote.price),
            implied_probability(under.quote.price),
            total_stake,
        )
        stake_over, stake_under, _ = split
        over_leg, under_leg = _leg(over, stake_over), _leg(under, stake_under)
        family_key = _family_key(family)
        middles.append(MiddleOpportunity(
            game=group[0].game,
            market_key=family_key,
            market_label=market_label(family_key),
            over=over_leg,
            under=under_leg,
            gap=round(under.line - over.line, 2),
            total_stake=total_stake,
            profit_if_hit=over_leg.payout + under_leg.payout - total_stake,
            worst_case=min(over_leg.payout, under_leg.payout) - total_stake,
            middle_range=(over.line, under.line),
            player=player,
        ))
    return middles
