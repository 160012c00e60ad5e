"""
Sharpline - sportsbook odds aggregation and edge detection
- Price normalization and book identity
- Market grouping (standard, period, alternate, player props)
- Sharp-weighted consensus probability and capped EV
- Arbitrage, middles and exchange-baseline edge classifiers
- Ordered, pure filter pipeline over a feed snapshot
"""

from .errors import SharplineError, ConfigError, FeedError
from .normalizer import normalize_price, format_american, canonical_book_name, is_stale, parse_timestamp
from .edge_math import (
    implied_probability,
    probability_to_american,
    american_to_decimal,
    basic_no_vig,
    weighted_consensus,
)
from .books import book_weight, EXCHANGE_BASELINE_BOOKS, ARBITRAGE_EXCLUDED_BOOKS
from .grouper import group_game
from .ev import best_price, edge_percent, cap_ev, choose_side, evaluate_market, SideCandidate
from .arbitrage import find_arbitrage
from .middles import find_middles
from .exchange_edge import find_exchange_edges
from .models import (
    Game,
    Quote,
    Market,
    BookLine,
    Pick,
    ArbitrageLeg,
    ArbitrageOpportunity,
    MiddleLeg,
    MiddleOpportunity,
    ExchangeEdge,
    PipelineConfig,
    PipelineResult,
    INSUFFICIENT_DATA,
)
from .pipeline import run_pipeline

__version__ = "1.0.0"

__all__ = [
    "SharplineError",
    "ConfigError",
    "FeedError",
    # Normalizer
    "normalize_price",
    "format_american",
    "canonical_book_name",
    "is_stale",
    "parse_timestamp",
    # Consensus
    "implied_probability",
    "probability_to_american",
    "american_to_decimal",
    "basic_no_vig",
    "weighted_consensus",
    "book_weight",
    "EXCHANGE_BASELINE_BOOKS",
    "ARBITRAGE_EXCLUDED_BOOKS",
    # Grouping / EV
    "group_game",
    "best_price",
    "edge_percent",
    "cap_ev",
    "choose_side",
    "evaluate_market",
    "SideCandidate",
    # Classifiers
    "find_arbitrage",
    "find_middles",
    "find_exchange_edges",
    # Records
    "Game",
    "Quote",
    "Market",
    "BookLine",
    "Pick",
    "ArbitrageLeg",
    "ArbitrageOpportunity",
    "MiddleLeg",
    "MiddleOpportunity",
    "ExchangeEdge",
    "PipelineConfig",
    "PipelineResult",
    "INSUFFICIENT_DATA",
    # Pipeline
    "run_pipeline",
]
