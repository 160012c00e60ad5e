"""System routes for health and readiness."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.deps import get_refresher, get_settings
from api.models import HealthResponse, ReadyResponse
from sharpline import __version__

logger = logging.getLogger(__name__)

router = APIRouter()

# Rate limiter (will use app.state.limiter at runtime)
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns basic health status for load balancers and monitoring.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )


@router.get("/ready", response_model=ReadyResponse)
@limiter.limit("30/minute")
async def ready(request: Request) -> ReadyResponse:
    """Readiness check endpoint.

    Verifies that:
    - an odds API key is configured
    - a feed snapshot has been loaded

    Returns 200 either way; data indicates individual check status.
    """
    checks = {
        "api_key": bool(get_settings().ODDS_API_KEY),
        "snapshot": get_refresher().ready,
    }
    return ReadyResponse(ready=all(checks.values()), checks=checks)
