"""
Engine records.

Every record is a frozen dataclass: stages derive new collections and never
mutate what an earlier stage produced.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from sharpline.normalizer import format_american

LINE_TOLERANCE = 0.01
INSUFFICIENT_DATA = "--"

BET_TYPES = ("straight", "props", "arbitrage", "middles", "exchanges")


def lines_match(a: Optional[float], b: Optional[float]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return abs(a - b) <= LINE_TOLERANCE


@dataclass(frozen=True)
class Game:
    id: str
    sport_key: str
    sport_title: str
    home_team: str
    away_team: str
    commence_time: Optional[datetime] = None

    def has_started(self, now: datetime) -> bool:
        return self.commence_time is not None and self.commence_time <= now


@dataclass(frozen=True)
class Quote:
    """One book's price for one selection at one instant."""
    book_key: str
    book_name: str
    market_key: str
    side: str
    price: int
    line: Optional[float] = None
    participant: Optional[str] = None
    last_update: Optional[datetime] = None
    synthetic: bool = False


@dataclass(frozen=True)
class Market:
    """A logical betting question for one game with its filtered quotes.

    ``consensus_line`` is the line of the first side; for spreads the second
    side sits at the negated line. Quotes at other lines stay in ``quotes``
    but are excluded by ``aligned_quotes``.
    """
    game: Game
    market_key: str
    kind: str
    sides: Tuple[str, ...]
    quotes: Tuple[Quote, ...]
    consensus_line: Optional[float] = None
    line_kind: Optional[str] = None
    player: Optional[str] = None
    lines_seen: Tuple[float, ...] = ()

    @property
    def two_sided(self) -> bool:
        return len(self.sides) == 2

    def line_for(self, side: str) -> Optional[float]:
        if self.consensus_line is None:
            return None
        if self.line_kind == "spread" and self.sides and side != self.sides[0]:
            return -self.consensus_line
        return self.consensus_line

    def quotes_for(self, side: str) -> Tuple[Quote, ...]:
        return tuple(q for q in self.quotes if q.side == side)

    def aligned_quotes(self, side: str) -> Tuple[Quote, ...]:
        """Quotes for a side at the consensus line (within tolerance)."""
        target = self.line_for(side)
        return tuple(q for q in self.quotes_for(side) if lines_match(q.line, target))

    def opposite(self, side: str) -> Optional[str]:
        if not self.two_sided:
            return None
        return self.sides[1] if side == self.sides[0] else self.sides[0]


@dataclass(frozen=True)
class BookLine:
    """Per-book breakdown row attached to a Pick."""
    book_key: str
    book_name: str
    price: int
    line: Optional[float]
    implied_probability: float
    ev: Optional[float] = None
    synthetic: bool = False


@dataclass(frozen=True)
class Pick:
    """One recommended selection for one Market."""
    game: Game
    market_key: str
    market_kind: str
    market_label: str
    side: str
    line: Optional[float]
    best_price: int
    best_book: str
    best_book_key: str
    book_count: int
    books: Tuple[BookLine, ...]
    average_price: Optional[int] = None
    fair_price: Optional[int] = None
    fair_probability: Optional[float] = None
    ev: Optional[float] = None
    player: Optional[str] = None
    synthetic_only: bool = False

    @property
    def has_ev(self) -> bool:
        return self.ev is not None

    @property
    def ev_label(self) -> str:
        if self.ev is None:
            return INSUFFICIENT_DATA
        return f"{self.ev:.2f}%"

    @property
    def is_prop(self) -> bool:
        return self.market_kind == "prop"

    @property
    def is_alternate(self) -> bool:
        return self.market_kind == "alternate"

    @property
    def best_price_label(self) -> str:
        return format_american(self.best_price)


@dataclass(frozen=True)
class ArbitrageLeg:
    book_key: str
    book_name: str
    side: str
    line: Optional[float]
    price: int
    implied_probability: float
    stake: float
    payout: float


@dataclass(frozen=True)
class ArbitrageOpportunity:
    game: Game
    market_key: str
    market_label: str
    legs: Tuple[ArbitrageLeg, ArbitrageLeg]
    implied_sum: float
    roi: float
    total_stake: float
    profit: float
    player: Optional[str] = None


@dataclass(frozen=True)
class MiddleLeg:
    """One side of a middle.

    ``line`` is the threshold on the Over/Under scale (for spreads, the home
    margin); ``quoted_line`` is what the book actually lists.
    """
    book_key: str
    book_name: str
    side: str
    line: float
    quoted_line: float
    price: int
    stake: float = 0.0
    payout: float = 0.0


@dataclass(frozen=True)
class MiddleOpportunity:
    """Both legs of a middle and what the stake returns.

    ``profit_if_hit`` assumes the result lands inside ``middle_range`` so both
    legs win; ``worst_case`` is the return when only one leg wins.
    """
    game: Game
    market_key: str
    market_label: str
    over: MiddleLeg
    under: MiddleLeg
    gap: float
    total_stake: float = 0.0
    profit_if_hit: float = 0.0
    worst_case: float = 0.0
    middle_range: Tuple[float, float] = (0.0, 0.0)
    player: Optional[str] = None


@dataclass(frozen=True)
class ExchangeEdge:
    game: Game
    market_key: str
    market_label: str
    side: str
    line: Optional[float]
    book_key: str
    book_name: str
    price: int
    baseline_book: str
    baseline_price: Optional[int]
    baseline_probability: float
    edge: float
    one_sided: bool = False
    player: Optional[str] = None

    @property
    def confidence(self) -> str:
        return "high" if self.one_sided else "standard"


@dataclass(frozen=True)
class PipelineConfig:
    """Caller-supplied knobs for one pipeline run."""
    sport: str = "all"
    date: str = "all"
    market_type: str = "all"
    bet_type: str = "straight"
    sportsbooks: Tuple[str, ...] = ()
    min_data_points: int = 4
    min_books: int = 0
    timezone: str = "America/New_York"
    arbitrage_stake: float = 100.0
    min_arbitrage_roi: float = 1.0
    default_side: int = 0
    synthetic_under_price: int = -119
    suppress_synthetic_unders: bool = False
    ev_cap: float = 50.0


@dataclass(frozen=True)
class PipelineResult:
    generated_at: datetime
    config: PipelineConfig
    picks: Tuple[Pick, ...] = ()
    arbitrage: Tuple[ArbitrageOpportunity, ...] = ()
    middles: Tuple[MiddleOpportunity, ...] = ()
    exchange_edges: Tuple[ExchangeEdge, ...] = ()
    game_count: int = 0
    market_count: int = 0
    dropped: dict = field(default_factory=dict)
