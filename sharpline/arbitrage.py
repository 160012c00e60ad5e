"""
Arbitrage classifier.

Pairs the two sides of a two-outcome market across different books. When the
implied probabilities of the pair sum below 1, staking each leg in proportion
to its implied probability returns the same payout whichever side wins:

    stake_i = S × p_i / Σp        payout = S / Σp        ROI = (1 - Σp) × 100
"""
from typing import FrozenSet, Optional

from sharpline.books import ARBITRAGE_EXCLUDED_BOOKS
from sharpline.models import ArbitrageLeg, ArbitrageOpportunity, BookLine, Pick

DEFAULT_STAKE = 100.0
MIN_ROI = 1.0


def _eligible(rows, excluded: FrozenSet[str]):
    return [r for r in rows if not r.synthetic and r.book_key not in excluded]


def _leg(row: BookLine, side: str, stake: float, payout: float) -> ArbitrageLeg:
    return ArbitrageLeg(
        book_key=row.book_key,
        book_name=row.book_name,
        side=side,
        line=row.line,
        price=row.price,
        implied_probability=row.implied_probability,
        stake=stake,
        payout=payout,
    )


def split_stake(p_first: float, p_second: float, total_stake: float):
    """Stakes and common payout for a two-leg arb.

    Returns (stake_first, stake_second, payout), or None when the
    probabilities can't form a book (non-positive sum).
    """
    total = p_first + p_second
    if total <= 0:
        return None
    stake_first = total_stake * p_first / total
    stake_second = total_stake * p_second / total
    return stake_first, stake_second, total_stake / total


def find_arbitrage(
    first: Pick,
    second: Pick,
    total_stake: float = DEFAULT_STAKE,
    excluded: FrozenSet[str] = ARBITRAGE_EXCLUDED_BOOKS,
    min_roi: Optional[float] = None,
) -> Optional[ArbitrageOpportunity]:
    """
    Best cross-book arbitrage between the two sides of one market.

    Args:
        first, second: per-side Picks of the same market; their book rows are
            already aligned to complementary lines
        total_stake: combined stake S across both legs
        excluded: operators never used as a leg
        min_roi: optional ROI floor (percent); the pipeline applies its own

    Returns:
        The pair with the lowest implied-probability sum when that sum is
        below 1, otherwise None.
    """
    if first is None or second is None:
        return None

    best_pair = None
    best_sum = None
    for a in _eligible(first.books, excluded):
        for b in _eligible(second.books, excluded):
            if a.book_key == b.book_key:
                continue
            total = a.implied_probability + b.implied_probability
            if best_sum is None or total < best_sum:
                best_pair, best_sum = (a, b), total

    if best_pair is None or best_sum >= 1:
        return None

    roi = (1 - best_sum) * 100
    if min_roi is not None and roi < min_roi:
        return None

    a, b = best_pair
    stake_a, stake_b, payout = split_stake(a.implied_probability, b.implied_probability, total_stake)
    return ArbitrageOpportunity(
        game=first.game,
        market_key=first.market_key,
        market_label=first.market_label,
        legs=(_leg(a, first.side, stake_a, payout), _leg(b, second.side, stake_b, payout)),
        implied_sum=best_sum,
        roi=roi,
        total_stake=total_stake,
        profit=payout - total_stake,
        player=first.player,
    )
