"""Shared dependencies and settings for the Sharpline API.

This module provides:
- Settings class with immutable configuration
- Singleton feed client and refresher (NOT recreated per request)
- Dependency helpers for FastAPI routes
"""
from functools import lru_cache
from typing import Optional, TYPE_CHECKING
import os

if TYPE_CHECKING:
    from api.services.odds_feed import OddsFeedClient
    from api.services.refresher import OddsRefresher


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings - immutable after startup"""
    # Odds feed
    ODDS_API_KEY: str = ""
    ODDS_API_BASE_URL = "https://api.the-odds-api.com/v4"
    ODDS_REGIONS = "us,us2,us_dfs,us_ex"
    ODDS_MARKETS = "h2h,spreads,totals"
    ODDS_SPORTS: list[str] = [
        "americanfootball_nfl",
        "basketball_nba",
        "baseball_mlb",
        "icehockey_nhl",
    ]
    FEED_TIMEOUT_SECONDS = 30.0
    # Alternates, periods and props come from one request per event
    FETCH_EVENT_MARKETS = True
    MAX_EVENTS_PER_SPORT = 10

    # Refresh loop
    AUTO_REFRESH = True
    REFRESH_INTERVAL_SECONDS = 45.0
    REFRESH_COOLDOWN_SECONDS = 10.0

    # Pipeline defaults
    MIN_DATA_POINTS = 4
    TIMEZONE = "America/New_York"

    # Security
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Rate limits
    RATE_LIMIT = "60/minute"


@lru_cache()
def get_settings() -> Settings:
    """Get cached Settings instance with overrides loaded from environment."""
    settings = Settings()
    settings.ODDS_API_KEY = os.getenv("ODDS_API_KEY", settings.ODDS_API_KEY)
    settings.ODDS_API_BASE_URL = os.getenv("ODDS_API_BASE_URL", settings.ODDS_API_BASE_URL)
    settings.ODDS_REGIONS = os.getenv("ODDS_REGIONS", settings.ODDS_REGIONS)
    settings.ODDS_MARKETS = os.getenv("ODDS_MARKETS", settings.ODDS_MARKETS)
    settings.FETCH_EVENT_MARKETS = _env_bool("FETCH_EVENT_MARKETS", settings.FETCH_EVENT_MARKETS)
    settings.MAX_EVENTS_PER_SPORT = int(os.getenv("MAX_EVENTS_PER_SPORT", settings.MAX_EVENTS_PER_SPORT))
    sports = os.getenv("ODDS_SPORTS", "")
    if sports:
        settings.ODDS_SPORTS = [s.strip() for s in sports.split(",") if s.strip()]
    settings.AUTO_REFRESH = _env_bool("AUTO_REFRESH", settings.AUTO_REFRESH)
    settings.REFRESH_INTERVAL_SECONDS = float(
        os.getenv("REFRESH_INTERVAL_SECONDS", settings.REFRESH_INTERVAL_SECONDS)
    )
    settings.REFRESH_COOLDOWN_SECONDS = float(
        os.getenv("REFRESH_COOLDOWN_SECONDS", settings.REFRESH_COOLDOWN_SECONDS)
    )
    settings.MIN_DATA_POINTS = int(os.getenv("MIN_DATA_POINTS", settings.MIN_DATA_POINTS))
    settings.TIMEZONE = os.getenv("TIMEZONE", settings.TIMEZONE)
    origins = os.getenv("ALLOWED_ORIGINS", "")
    if origins:
        settings.ALLOWED_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
    settings.RATE_LIMIT = os.getenv("RATE_LIMIT", settings.RATE_LIMIT)
    return settings


# Singletons - created lazily, shared by routes and the lifespan hook
_feed_client: Optional["OddsFeedClient"] = None
_refresher: Optional["OddsRefresher"] = None


def get_feed_client() -> "OddsFeedClient":
    """Returns singleton OddsFeedClient instance."""
    global _feed_client
    if _feed_client is None:
        from api.services.odds_feed import OddsFeedClient
        settings = get_settings()
        _feed_client = OddsFeedClient(
            api_key=settings.ODDS_API_KEY,
            base_url=settings.ODDS_API_BASE_URL,
            regions=settings.ODDS_REGIONS,
            markets=settings.ODDS_MARKETS,
            timeout=settings.FEED_TIMEOUT_SECONDS,
            event_markets=None if settings.FETCH_EVENT_MARKETS else {},
            max_events=settings.MAX_EVENTS_PER_SPORT,
        )
    return _feed_client


def get_refresher() -> "OddsRefresher":
    """Returns singleton OddsRefresher instance."""
    global _refresher
    if _refresher is None:
        from api.services.refresher import OddsRefresher
        settings = get_settings()
        _refresher = OddsRefresher(
            fetch=lambda: get_feed_client().fetch_games(settings.ODDS_SPORTS),
            interval=settings.REFRESH_INTERVAL_SECONDS,
            cooldown=settings.REFRESH_COOLDOWN_SECONDS,
            config_factory=default_pipeline_config,
        )
    return _refresher


def default_pipeline_config(**overrides):
    """PipelineConfig seeded from settings."""
    from sharpline.models import PipelineConfig
    settings = get_settings()
    values = {"min_data_points": settings.MIN_DATA_POINTS, "timezone": settings.TIMEZONE}
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig(**values)
