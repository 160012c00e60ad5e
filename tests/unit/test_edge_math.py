"""Tests for odds conversions and the weighted consensus calculator."""
import random

import pytest

from sharpline.books import book_weight
from sharpline.edge_math import (
    american_to_decimal,
    basic_no_vig,
    implied_probability,
    probability_to_american,
    weighted_consensus,
)
from sharpline.models import Quote


def _quote(book: str, price: int) -> Quote:
    return Quote(book_key=book, book_name=book, market_key="h2h", side="Boston Celtics", price=price)


# --- conversions ---

def test_implied_probability_examples():
    assert implied_probability(-150) == pytest.approx(0.6)
    assert implied_probability(120) == pytest.approx(100 / 220)
    assert implied_probability(100) == pytest.approx(0.5)
    assert implied_probability(-100) == pytest.approx(0.5)


def test_probability_round_trip():
    prices = list(range(-1000, -99, 7)) + list(range(100, 1001, 7)) + [-100, 100, -10000, 10000]
    for price in prices:
        p = implied_probability(price)
        assert 0 < p < 1
        back = probability_to_american(p)
        assert implied_probability(back) == pytest.approx(p, abs=1e-9)


def test_probability_to_american_bounds():
    assert probability_to_american(0) is None
    assert probability_to_american(1) is None
    assert probability_to_american(None) is None
    assert probability_to_american(0.6) == -150
    assert probability_to_american(100 / 220) == 120
    assert probability_to_american(0.5) == 100


def test_american_to_decimal():
    assert american_to_decimal(150) == pytest.approx(2.5)
    assert american_to_decimal(-200) == pytest.approx(1.5)
    assert american_to_decimal(100) == pytest.approx(2.0)


def test_basic_no_vig():
    a, b = basic_no_vig(0.55, 0.55)
    assert a == pytest.approx(0.5) and b == pytest.approx(0.5)
    assert basic_no_vig(0, 0) == (0.5, 0.5)
    a, b = basic_no_vig(0.6, 0.45)
    assert a + b == pytest.approx(1.0)


# --- book weights ---

@pytest.mark.parametrize("key,expected", [
    ("pinnacle", 3.0),
    ("circasports", 2.5),
    ("novig", 2.5),
    ("prophetx", 2.5),
    ("lowvig", 2.0),
    ("draftkings", 1.5),
    ("draftkings_pick6", 1.0),
    ("betrivers", 1.5),
    ("betr_us_dfs", 1.0),
    ("williamhill_us", 1.5),
    ("prizepicks", 1.0),
    ("some_new_book", 1.0),
])
def test_book_weights(key, expected):
    assert book_weight(key) == expected


def test_book_weight_falls_back_to_title():
    assert book_weight("xyz", "Pinnacle") == 3.0
    assert book_weight("xyz", None) == 1.0


# --- weighted consensus ---

def test_consensus_is_weighted_mean():
    quotes = [_quote("pinnacle", -110), _quote("draftkings", -120), _quote("fanduel", -105), _quote("other", -115)]
    expected = (
        3.0 * implied_probability(-110)
        + 1.5 * implied_probability(-120)
        + 1.5 * implied_probability(-105)
        + 1.0 * implied_probability(-115)
    ) / 7.0
    assert weighted_consensus(quotes) == pytest.approx(expected)


def test_consensus_requires_minimum_quotes():
    quotes = [_quote("pinnacle", -110), _quote("draftkings", -120), _quote("fanduel", -105)]
    assert weighted_consensus(quotes) is None
    assert weighted_consensus(quotes, min_quotes=3) is not None


def test_consensus_empty_input():
    assert weighted_consensus([]) is None
    assert weighted_consensus([], min_quotes=0) is None


def test_consensus_relaxed_to_one():
    p = weighted_consensus([_quote("draftkings", -150)], min_quotes=1)
    assert p == pytest.approx(0.6)


def test_consensus_stays_within_contributing_range():
    rng = random.Random(7)
    books = ["pinnacle", "draftkings", "fanduel", "betmgm", "novig", "prizepicks", "other"]
    for _ in range(200):
        quotes = []
        for book in rng.sample(books, rng.randint(1, len(books))):
            price = rng.choice([-1, 1]) * rng.randint(100, 900)
            quotes.append(_quote(book, price))
        probs = [implied_probability(q.price) for q in quotes]
        p = weighted_consensus(quotes, min_quotes=1)
        assert min(probs) - 1e-12 <= p <= max(probs) + 1e-12
