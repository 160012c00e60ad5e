"""
Odds conversions and the weighted consensus calculator.

Key features:
- American odds <-> implied probability (and decimal odds)
- Basic proportional no-vig
- Sharp-weighted consensus probability with a minimum-quote requirement
"""
from typing import Iterable, Optional, Tuple

from sharpline.books import book_weight

DEFAULT_MIN_QUOTES = 4


def implied_probability(price: int) -> float:
    """Convert American odds to implied probability.

    Examples:
        -150 → 0.600 (60.0%)
        +120 → 0.455 (45.5%)
    """
    if price < 0:
        return -price / (-price + 100)
    return 100 / (price + 100)


def probability_to_american(prob: float) -> Optional[int]:
    """Convert a probability back to (fair) American odds.

    Examples:
        0.600 → -150
        0.455 → +120
    """
    if prob is None or prob <= 0 or prob >= 1:
        return None
    if prob > 0.5:
        return round(-100 * prob / (1 - prob))
    return round(100 * (1 - prob) / prob)


def american_to_decimal(price: int) -> float:
    """Decimal odds (total return per unit staked).

    Examples:
        +150 → 2.50
        -200 → 1.50
    """
    if price > 0:
        return 1 + price / 100
    return 1 + 100 / -price


def basic_no_vig(p_a: float, p_b: float) -> Tuple[float, float]:
    """Basic vig removal - assumes the margin is spread proportionally."""
    total = p_a + p_b
    if total <= 0:
        return 0.5, 0.5
    return p_a / total, p_b / total


def weighted_consensus(quotes: Iterable, min_quotes: int = DEFAULT_MIN_QUOTES) -> Optional[float]:
    """
    Sharp-weighted consensus probability for one selection.

        p_fair = Σ weight(book) × implied(price) / Σ weight(book)

    Args:
        quotes: Quote-like objects with book_key, book_name and price
        min_quotes: Minimum contributing quotes; below it the result is None
            (insufficient data).

    Returns:
        Consensus probability (0-1), or None when there isn't enough data.
    """
    quotes = list(quotes)
    if not quotes or len(quotes) < max(1, min_quotes):
        return None

    weighted_sum = 0.0
    weight_total = 0.0
    for quote in quotes:
        weight = book_weight(quote.book_key, quote.book_name)
        weighted_sum += weight * implied_probability(quote.price)
        weight_total += weight

    if weight_total <= 0:
        return None
    return weighted_sum / weight_total
