# Pytest configuration and fixtures for sharpline tests
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# The app must never reach the real feed from tests
os.environ.setdefault("AUTO_REFRESH", "false")
os.environ.setdefault("ODDS_API_KEY", "test-key")

from api.main import app

NOW = datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class FeedBuilder:
    """Builds raw games in The Odds API v4 shape, timestamped relative to ``now``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    @staticmethod
    def outcome(name: str, price, point: Optional[float] = None, description: Optional[str] = None) -> dict:
        out = {"name": name, "price": price}
        if point is not None:
            out["point"] = point
        if description is not None:
            out["description"] = description
        return out

    def market(self, key: str, outcomes: list, last_update: Optional[datetime] = None) -> dict:
        return {"key": key, "last_update": _iso(last_update or self.now), "outcomes": outcomes}

    def book(self, key: str, markets: list, title: Optional[str] = None, last_update: Optional[datetime] = None) -> dict:
        return {
            "key": key,
            "title": title or key.title(),
            "last_update": _iso(last_update or self.now),
            "markets": markets,
        }

    def game(
        self,
        bookmakers: list,
        game_id: str = "game-1",
        sport_key: str = "basketball_nba",
        home: str = "Boston Celtics",
        away: str = "New York Knicks",
        commence: Optional[datetime] = None,
    ) -> dict:
        return {
            "id": game_id,
            "sport_key": sport_key,
            "sport_title": "NBA",
            "commence_time": _iso(commence or self.now + timedelta(hours=3)),
            "home_team": home,
            "away_team": away,
            "bookmakers": bookmakers,
        }

    def moneyline(self, book_key: str, home_price, away_price, **kwargs) -> dict:
        return self.book(book_key, [self.market("h2h", [
            self.outcome("Boston Celtics", home_price),
            self.outcome("New York Knicks", away_price),
        ])], **kwargs)

    def total(self, book_key: str, point: float, over, under=None, key: str = "totals", **kwargs) -> dict:
        outcomes = [self.outcome("Over", over, point)]
        if under is not None:
            outcomes.append(self.outcome("Under", under, point))
        return self.book(book_key, [self.market(key, outcomes)], **kwargs)

    def spread(self, book_key: str, home_point: float, home_price, away_price, key: str = "spreads", **kwargs) -> dict:
        return self.book(book_key, [self.market(key, [
            self.outcome("Boston Celtics", home_price, home_point),
            self.outcome("New York Knicks", away_price, -home_point),
        ])], **kwargs)

    def prop(self, book_key: str, player: str, point: float, over, under=None,
             key: str = "player_points", **kwargs) -> dict:
        outcomes = [self.outcome("Over", over, point, player)]
        if under is not None:
            outcomes.append(self.outcome("Under", under, point, player))
        return self.book(book_key, [self.market(key, outcomes)], **kwargs)


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant for staleness and started-game checks."""
    return NOW


@pytest.fixture
def feed() -> FeedBuilder:
    return FeedBuilder()


@pytest.fixture
def live_feed() -> FeedBuilder:
    """Feed stamped with the wall clock, for code paths that use the current time."""
    return FeedBuilder(datetime.now(timezone.utc))


@pytest.fixture
def test_client() -> Generator[TestClient, None, None]:
    """FastAPI TestClient for integration tests - no external server needed."""
    from api.routes import odds, system

    odds.limiter.reset()
    system.limiter.reset()
    with TestClient(app) as client:
        yield client

