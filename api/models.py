"""Pydantic models for the Sharpline API.

Response models mirror the engine's frozen dataclasses; request models
validate pipeline configuration with Literal, Field and field_validator.
"""
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from sharpline.markets import sport_label
from sharpline.models import (
    ArbitrageOpportunity,
    BookLine,
    ExchangeEdge,
    Game,
    MiddleLeg,
    MiddleOpportunity,
    Pick,
    PipelineConfig,
    PipelineResult,
)
from sharpline.normalizer import format_american

BetType = Literal["straight", "props", "arbitrage", "middles", "exchanges"]


def _validate_date_filter(v: str) -> str:
    if v == "all":
        return v
    try:
        date.fromisoformat(v)
    except ValueError:
        raise ValueError("date must be 'all' or YYYY-MM-DD")
    return v


# Engine record models
class GameInfo(BaseModel):
    id: str
    sport_key: str
    sport_title: str
    sport_label: str
    home_team: str
    away_team: str
    commence_time: Optional[datetime] = None

    @classmethod
    def from_game(cls, game: Game) -> "GameInfo":
        return cls(
            id=game.id,
            sport_key=game.sport_key,
            sport_title=game.sport_title,
            sport_label=sport_label(game.sport_key, game.sport_title),
            home_team=game.home_team,
            away_team=game.away_team,
            commence_time=game.commence_time,
        )


class BookLineModel(BaseModel):
    """Per-book row of a pick's breakdown."""
    book_key: str
    book_name: str
    price: int
    price_label: str
    line: Optional[float] = None
    implied_probability: float = Field(..., gt=0, lt=1)
    ev: Optional[float] = None
    synthetic: bool = False

    @classmethod
    def from_book_line(cls, row: BookLine) -> "BookLineModel":
        return cls(
            book_key=row.book_key,
            book_name=row.book_name,
            price=row.price,
            price_label=format_american(row.price),
            line=row.line,
            implied_probability=row.implied_probability,
            ev=row.ev,
            synthetic=row.synthetic,
        )


class PickModel(BaseModel):
    """One recommended selection; ``ev`` is null when data is insufficient."""
    game: GameInfo
    market_key: str
    market_kind: str
    market_label: str
    side: str
    line: Optional[float] = None
    player: Optional[str] = None
    best_price: int
    best_price_label: str
    best_book: str
    best_book_key: str
    average_price: Optional[int] = None
    fair_price: Optional[int] = None
    fair_probability: Optional[float] = None
    ev: Optional[float] = Field(None, ge=-50, le=50)
    ev_label: str
    book_count: int = Field(..., ge=0)
    books: list[BookLineModel] = []

    @field_validator("best_price")
    @classmethod
    def validate_price(cls, v: int) -> int:
        """American odds are never inside (-100, 100)."""
        if abs(v) < 100:
            raise ValueError("American odds must be at least ±100")
        return v

    @classmethod
    def from_pick(cls, pick: Pick) -> "PickModel":
        return cls(
            game=GameInfo.from_game(pick.game),
            market_key=pick.market_key,
            market_kind=pick.market_kind,
            market_label=pick.market_label,
            side=pick.side,
            line=pick.line,
            player=pick.player,
            best_price=pick.best_price,
            best_price_label=pick.best_price_label,
            best_book=pick.best_book,
            best_book_key=pick.best_book_key,
            average_price=pick.average_price,
            fair_price=pick.fair_price,
            fair_probability=pick.fair_probability,
            ev=pick.ev,
            ev_label=pick.ev_label,
            book_count=pick.book_count,
            books=[BookLineModel.from_book_line(r) for r in pick.books],
        )


class ArbitrageLegModel(BaseModel):
    book_key: str
    book_name: str
    side: str
    line: Optional[float] = None
    price: int
    implied_probability: float
    stake: float
    payout: float

    @field_serializer("stake", "payout")
    def serialize_money(self, v: float) -> float:
        return round(v, 2)


class ArbitrageModel(BaseModel):
    game: GameInfo
    market_key: str
    market_label: str
    player: Optional[str] = None
    legs: list[ArbitrageLegModel] = Field(..., min_length=2, max_length=2)
    implied_sum: float = Field(..., gt=0, lt=1)
    roi: float = Field(..., gt=0)
    total_stake: float
    profit: float

    @field_serializer("roi", "total_stake", "profit")
    def serialize_money(self, v: float) -> float:
        return round(v, 2)

    @classmethod
    def from_opportunity(cls, arb: ArbitrageOpportunity) -> "ArbitrageModel":
        return cls(
            game=GameInfo.from_game(arb.game),
            market_key=arb.market_key,
            market_label=arb.market_label,
            player=arb.player,
            legs=[ArbitrageLegModel(**leg.__dict__) for leg in arb.legs],
            implied_sum=arb.implied_sum,
            roi=arb.roi,
            total_stake=arb.total_stake,
            profit=arb.profit,
        )


class MiddleLegModel(BaseModel):
    book_key: str
    book_name: str
    side: str
    line: float
    quoted_line: float
    price: int
    stake: float
    payout: float

    @field_serializer("stake", "payout")
    def serialize_stake(self, v: float) -> float:
        return round(v, 2)

    @classmethod
    def from_leg(cls, leg: MiddleLeg) -> "MiddleLegModel":
        return cls(**leg.__dict__)


class MiddleModel(BaseModel):
    game: GameInfo
    market_key: str
    market_label: str
    player: Optional[str] = None
    over: MiddleLegModel
    under: MiddleLegModel
    gap: float = Field(..., gt=0)
    total_stake: float
    profit_if_hit: float
    worst_case: float
    middle_range: tuple[float, float]

    @field_serializer("total_stake", "profit_if_hit", "worst_case")
    def serialize_money(self, v: float) -> float:
        return round(v, 2)

    @classmethod
    def from_opportunity(cls, middle: MiddleOpportunity) -> "MiddleModel":
        return cls(
            game=GameInfo.from_game(middle.game),
            market_key=middle.market_key,
            market_label=middle.market_label,
            player=middle.player,
            over=MiddleLegModel.from_leg(middle.over),
            under=MiddleLegModel.from_leg(middle.under),
            gap=middle.gap,
            total_stake=middle.total_stake,
            profit_if_hit=middle.profit_if_hit,
            worst_case=middle.worst_case,
            middle_range=middle.middle_range,
        )


class ExchangeEdgeModel(BaseModel):
    game: GameInfo
    market_key: str
    market_label: str
    player: Optional[str] = None
    side: str
    line: Optional[float] = None
    book_key: str
    book_name: str
    price: int
    baseline_book: str
    baseline_price: Optional[int] = None
    baseline_probability: float
    edge: float = Field(..., ge=-50, le=50)
    one_sided: bool = False
    confidence: Literal["high", "standard"] = "standard"

    @classmethod
    def from_edge(cls, edge: ExchangeEdge) -> "ExchangeEdgeModel":
        return cls(
            game=GameInfo.from_game(edge.game),
            market_key=edge.market_key,
            market_label=edge.market_label,
            player=edge.player,
            side=edge.side,
            line=edge.line,
            book_key=edge.book_key,
            book_name=edge.book_name,
            price=edge.price,
            baseline_book=edge.baseline_book,
            baseline_price=edge.baseline_price,
            baseline_probability=edge.baseline_probability,
            edge=edge.edge,
            one_sided=edge.one_sided,
            confidence=edge.confidence,
        )


class PipelineResponse(BaseModel):
    """Result of one pipeline run; only the list for ``bet_type`` is filled."""
    generated_at: datetime
    bet_type: BetType
    game_count: int = 0
    market_count: int = 0
    count: int = 0
    picks: list[PickModel] = []
    arbitrage: list[ArbitrageModel] = []
    middles: list[MiddleModel] = []
    exchange_edges: list[ExchangeEdgeModel] = []

    @classmethod
    def from_result(cls, result: PipelineResult) -> "PipelineResponse":
        picks = [PickModel.from_pick(p) for p in result.picks]
        arbitrage = [ArbitrageModel.from_opportunity(a) for a in result.arbitrage]
        middles = [MiddleModel.from_opportunity(m) for m in result.middles]
        edges = [ExchangeEdgeModel.from_edge(e) for e in result.exchange_edges]
        return cls(
            generated_at=result.generated_at,
            bet_type=result.config.bet_type,
            game_count=result.game_count,
            market_count=result.market_count,
            count=len(picks) + len(arbitrage) + len(middles) + len(edges),
            picks=picks,
            arbitrage=arbitrage,
            middles=middles,
            exchange_edges=edges,
        )


# Request models
class AnalyzeRequest(BaseModel):
    """Run the pipeline over a caller-supplied raw feed snapshot."""
    games: list[dict[str, Any]] = Field(default_factory=list)
    sport: str = Field("all", max_length=500)
    date: str = "all"
    market_type: str = Field("all", max_length=100)
    bet_type: BetType = "straight"
    sportsbooks: list[str] = Field(default_factory=list, max_length=100)
    min_data_points: int = Field(4, ge=0, le=100)
    min_books: int = Field(0, ge=0, le=100)
    arbitrage_stake: float = Field(100.0, gt=0, le=1_000_000)
    now: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_date_filter(v)

    def to_config(self, timezone: str = "America/New_York") -> PipelineConfig:
        return PipelineConfig(
            sport=self.sport,
            date=self.date,
            market_type=self.market_type,
            bet_type=self.bet_type,
            sportsbooks=tuple(self.sportsbooks),
            min_data_points=self.min_data_points,
            min_books=self.min_books,
            arbitrage_stake=self.arbitrage_stake,
            timezone=timezone,
        )


# System endpoint models
class RefreshStatus(BaseModel):
    running: bool
    ready: bool
    last_refresh: Optional[datetime] = None
    last_error: Optional[str] = None
    refresh_count: int = 0
    failure_count: int = 0
    game_count: int = 0
    interval_seconds: float
    cooldown_seconds: float
    requests_remaining: Optional[str] = None


class RefreshResponse(BaseModel):
    refreshed: bool
    status: RefreshStatus


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    version: str = "1.0.0"


class ReadyResponse(BaseModel):
    """Readiness check response."""
    ready: bool
    checks: dict[str, bool]
