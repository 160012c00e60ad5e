"""
Odds pipeline routes

Includes:
- /picks      - +EV straight bets or player props
- /arbitrage  - cross-book arbitrage pairs
- /middles    - line-gap middles
- /exchanges  - edges against the reference exchanges
- /status     - refresher status
- /refresh    - manual refresh (cooldown applies)
- /analyze    - run the pipeline over a posted feed snapshot
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.deps import default_pipeline_config, get_feed_client, get_refresher, get_settings
from api.models import AnalyzeRequest, PipelineResponse, RefreshResponse, RefreshStatus
from sharpline.errors import ConfigError, FeedError
from sharpline.models import PipelineConfig
from api.services.refresher import run_pipeline_async

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/odds", tags=["Odds"])

# Rate limiter (will use app.state.limiter at runtime)
limiter = Limiter(key_func=get_remote_address)

# Read-only snapshot routes share the configurable limit
SNAPSHOT_LIMIT = get_settings().RATE_LIMIT


def _split_books(sportsbooks: Optional[str]) -> Optional[tuple]:
    if not sportsbooks:
        return None
    return tuple(b.strip() for b in sportsbooks.split(",") if b.strip())


async def _run_snapshot(config: PipelineConfig) -> PipelineResponse:
    """Run the pipeline against the refresher's snapshot, mapping errors to HTTP."""
    try:
        result = await get_refresher().run_async(config)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FeedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return PipelineResponse.from_result(result)


def _status() -> RefreshStatus:
    return RefreshStatus(
        **get_refresher().status,
        requests_remaining=get_feed_client().requests_remaining,
    )


# ============================================================================
# Snapshot Routes
# ============================================================================

@router.get("/picks", response_model=PipelineResponse)
@limiter.limit(SNAPSHOT_LIMIT)
async def get_picks(
    request: Request,
    sport: str = Query("all", description="'all', a sport key/alias, or comma-joined keys"),
    date: str = Query("all", description="'all' or a local date (YYYY-MM-DD)"),
    market_type: str = Query("all", description="e.g. moneyline, spread, totals, 1st_half"),
    bet_type: Literal["straight", "props"] = Query("straight"),
    sportsbooks: Optional[str] = Query(None, description="Comma-separated book keys"),
    min_data_points: Optional[int] = Query(None, ge=0, le=100),
    min_books: int = Query(0, ge=0, le=100, description="Hide picks backed by fewer books"),
):
    """
    Ranked picks from the latest snapshot.

    Picks with a numeric EV come first (EV descending); picks with
    insufficient data follow, ordered by book count.
    """
    config = default_pipeline_config(
        sport=sport,
        date=date,
        market_type=market_type,
        bet_type=bet_type,
        sportsbooks=_split_books(sportsbooks),
        min_data_points=min_data_points,
        min_books=min_books,
    )
    return await _run_snapshot(config)


@router.get("/arbitrage", response_model=PipelineResponse)
@limiter.limit(SNAPSHOT_LIMIT)
async def get_arbitrage(
    request: Request,
    sport: str = Query("all"),
    date: str = Query("all"),
    market_type: str = Query("all"),
    sportsbooks: Optional[str] = Query(None),
    stake: float = Query(100.0, gt=0, le=1_000_000, description="Total stake across both legs"),
):
    """Arbitrage pairs at or above 1% ROI, best ROI first."""
    config = default_pipeline_config(
        sport=sport,
        date=date,
        market_type=market_type,
        bet_type="arbitrage",
        sportsbooks=_split_books(sportsbooks),
        arbitrage_stake=stake,
    )
    return await _run_snapshot(config)


@router.get("/middles", response_model=PipelineResponse)
@limiter.limit(SNAPSHOT_LIMIT)
async def get_middles(
    request: Request,
    sport: str = Query("all"),
    date: str = Query("all"),
    market_type: str = Query("all"),
    sportsbooks: Optional[str] = Query(None),
    stake: float = Query(100.0, gt=0, le=1_000_000),
):
    """Widest middle per game and market, widest first."""
    config = default_pipeline_config(
        sport=sport,
        date=date,
        market_type=market_type,
        bet_type="middles",
        sportsbooks=_split_books(sportsbooks),
        arbitrage_stake=stake,
    )
    return await _run_snapshot(config)


@router.get("/exchanges", response_model=PipelineResponse)
@limiter.limit(SNAPSHOT_LIMIT)
async def get_exchange_edges(
    request: Request,
    sport: str = Query("all"),
    date: str = Query("all"),
    market_type: str = Query("all"),
):
    """Prices beating the reference exchanges, including one-sided markets."""
    config = default_pipeline_config(
        sport=sport,
        date=date,
        market_type=market_type,
        bet_type="exchanges",
    )
    return await _run_snapshot(config)


# ============================================================================
# Refresh Control
# ============================================================================

@router.get("/status", response_model=RefreshStatus)
@limiter.limit(SNAPSHOT_LIMIT)
async def get_status(request: Request):
    """Refresher state: last refresh, last error, quota."""
    return _status()


@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit("10/minute")
async def trigger_refresh(request: Request):
    """Refresh now unless a refresh ran within the cooldown window."""
    refreshed = await get_refresher().refresh()
    return RefreshResponse(refreshed=refreshed, status=_status())


# ============================================================================
# Ad-hoc Analysis
# ============================================================================

@router.post("/analyze", response_model=PipelineResponse)
@limiter.limit("30/minute")
async def analyze(request: Request, body: AnalyzeRequest):
    """Run the pipeline over a posted raw feed (The Odds API v4 shape)."""
    config = body.to_config(timezone=get_settings().TIMEZONE)
    try:
        result = await run_pipeline_async(body.games, config, body.now)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Analyzed {len(body.games)} posted games ({body.bet_type}): {len(result.picks)} picks")
    return PipelineResponse.from_result(result)
