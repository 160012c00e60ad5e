"""
Exchange-edge classifier.

A small set of reference exchanges acts as the probability baseline. Any other
book beating the baseline's price at the same line is an edge, measured the
same way as EV but with the baseline's implied probability as p_fair.

When the baseline prices only one side of a two-sided market, the missing side
is surfaced with p_fair = 1 - p_baseline(other side), tagged one-sided.
"""
from typing import Iterable, List

from sharpline.books import EXCHANGE_BASELINE_BOOKS
from sharpline.edge_math import implied_probability
from sharpline.ev import EV_CAP, best_price, cap_ev, edge_percent
from sharpline.markets import market_label
from sharpline.models import ExchangeEdge, Market, Quote


def _edge(market: Market, side: str, quote: Quote, baseline: Quote, p_fair: float,
          one_sided: bool, cap: float) -> ExchangeEdge:
    return ExchangeEdge(
        game=market.game,
        market_key=market.market_key,
        market_label=market_label(market.market_key),
        side=side,
        line=market.line_for(side),
        book_key=quote.book_key,
        book_name=quote.book_name,
        price=quote.price,
        baseline_book=baseline.book_name,
        baseline_price=None if one_sided else baseline.price,
        baseline_probability=p_fair,
        edge=round(cap_ev(edge_percent(p_fair, quote.price), cap), 2),
        one_sided=one_sided,
        player=market.player,
    )


def find_exchange_edges(
    market: Market,
    baseline_books: Iterable[str] = EXCHANGE_BASELINE_BOOKS,
    cap: float = EV_CAP,
) -> List[ExchangeEdge]:
    """Pairwise best-vs-baseline comparison for one market."""
    baseline_books = set(baseline_books)
    baseline = {}
    others = {}
    for side in market.sides:
        aligned = [q for q in market.aligned_quotes(side) if not q.synthetic]
        baseline[side] = best_price([q for q in aligned if q.book_key in baseline_books])
        others[side] = [q for q in aligned if q.book_key not in baseline_books]

    edges = []
    for side in market.sides:
        reference = baseline[side]
        if reference is None:
            continue
        p_fair = implied_probability(reference.price)
        for quote in others[side]:
            if quote.price > reference.price:
                edges.append(_edge(market, side, quote, reference, p_fair, False, cap))

    if market.two_sided:
        first, second = market.sides
        for present, missing in ((first, second), (second, first)):
            if baseline[present] is None or baseline[missing] is not None:
                continue
            best = best_price(others[missing])
            if best is None:
                continue
            p_fair = 1 - implied_probability(baseline[present].price)
            edges.append(_edge(market, missing, best, baseline[present], p_fair, True, cap))
    return edges
