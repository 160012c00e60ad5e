#!/usr/bin/env python3
"""
Sharpline Odds API - FastAPI Application Factory

Serves the odds aggregation and edge detection engine over a periodically
refreshed feed snapshot. All endpoints are defined in api/routes/ modules.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api.deps import get_feed_client, get_refresher, get_settings
from api.middleware import add_security_headers, feed_error_handler, global_exception_handler
from api.routes import odds_router, system_router
from sharpline import __version__
from sharpline.errors import FeedError

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom handler for rate limit exceeded errors."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "detail": str(exc.detail)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    logger.info(f"Starting Sharpline Odds API v{__version__}")
    logger.info(
        f"Feed: sports={','.join(settings.ODDS_SPORTS)} regions={settings.ODDS_REGIONS} "
        f"refresh={settings.REFRESH_INTERVAL_SECONDS:.0f}s cooldown={settings.REFRESH_COOLDOWN_SECONDS:.0f}s"
    )
    if not settings.ODDS_API_KEY:
        logger.warning("ODDS_API_KEY not set; feed requests will fail until it is configured")

    refresher = get_refresher()
    if settings.AUTO_REFRESH:
        await refresher.start()
    else:
        logger.info("Auto-refresh disabled; snapshot loads on POST /api/odds/refresh")

    yield

    # Shutdown
    await refresher.stop()
    await get_feed_client().close()


# Application factory
app = FastAPI(
    title="Sharpline Odds API",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS middleware with restricted settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# Security middleware
app.middleware("http")(add_security_headers)

# Exception handlers
app.exception_handler(FeedError)(feed_error_handler)
app.exception_handler(Exception)(global_exception_handler)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Router Registration
# ============================================================================

# System routes: /health, /ready (no prefix)
app.include_router(system_router, tags=["System"])

# Odds routes: /api/odds/picks, /api/odds/arbitrage, /api/odds/analyze, etc.
app.include_router(odds_router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
