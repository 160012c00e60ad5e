"""
The Odds API client - the raw multi-bookmaker feed behind the engine.

Reuses one pooled httpx.AsyncClient across requests; must call close() on
application shutdown. Any HTTP, transport or decode failure is raised as
FeedError, the only error the engine surfaces to consumers.
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from sharpline.errors import FeedError

logger = logging.getLogger(__name__)

_ALTERNATES = "alternate_spreads,alternate_totals,team_totals"

# Alternates, periods and player props are only served per event
EVENT_MARKETS = {
    "americanfootball_nfl": f"{_ALTERNATES},spreads_h1,totals_h1,"
                            "player_pass_yds,player_rush_yds,player_receptions,player_reception_yds",
    "americanfootball_ncaaf": f"{_ALTERNATES},spreads_h1,totals_h1,"
                              "player_pass_yds,player_rush_yds,player_reception_yds",
    "basketball_nba": f"{_ALTERNATES},spreads_h1,totals_h1,spreads_q1,totals_q1,"
                      "player_points,player_rebounds,player_assists,player_threes",
    "basketball_ncaab": f"{_ALTERNATES},spreads_h1,totals_h1,"
                        "player_points,player_rebounds,player_assists",
    "baseball_mlb": f"{_ALTERNATES},spreads_1st_5_innings,totals_1st_5_innings,"
                    "batter_hits,batter_total_bases,pitcher_strikeouts",
    "icehockey_nhl": f"{_ALTERNATES},spreads_p1,totals_p1,"
                     "player_points,player_shots_on_goal",
}

# Each event costs one request against the quota
MAX_EVENTS_PER_SPORT = 10


class OddsFeedClient:
    """Client for The Odds API v4.

    Features:
    - Lazy initialization of a shared, pooled httpx.AsyncClient
    - Quota tracking from x-requests-remaining / x-requests-used
    - Multi-sport snapshot fetch (partial failures logged, total failure raised)
    - Per-event fetch of alternate, period and prop markets, merged into each game
    """

    BASE_URL = "https://api.the-odds-api.com/v4"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = BASE_URL,
        regions: str = "us",
        markets: str = "h2h,spreads,totals",
        timeout: float = 30.0,
        event_markets: Optional[Dict[str, str]] = None,
        max_events: int = MAX_EVENTS_PER_SPORT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.regions = regions
        self.markets = markets
        self.timeout = timeout
        self.event_markets = dict(EVENT_MARKETS) if event_markets is None else dict(event_markets)
        self.max_events = max_events
        self.requests_remaining: Optional[str] = None
        self.requests_used: Optional[str] = None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of shared client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                headers={"User-Agent": "Sharpline/1.0"},
                transport=self._transport,
            )
        return self._client

    def _update_quota(self, headers: httpx.Headers):
        """Track API quota from response headers"""
        self.requests_remaining = headers.get("x-requests-remaining", self.requests_remaining)
        self.requests_used = headers.get("x-requests-used", self.requests_used)

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        if not self.api_key:
            raise FeedError("No odds API key configured. Set ODDS_API_KEY.")
        client = await self._get_client()
        try:
            resp = await client.get(path, params={"apiKey": self.api_key, **params})
            self._update_quota(resp.headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP {e.response.status_code} from {path}")
            raise FeedError(f"Odds feed returned HTTP {e.response.status_code} for {path}",
                            status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"Request failed for {path}: {e}")
            raise FeedError(f"Odds feed request failed for {path}: {e}") from e
        except ValueError as e:
            raise FeedError(f"Odds feed returned invalid JSON for {path}") from e

    async def get_odds(
        self,
        sport: str,
        markets: Optional[str] = None,
        bookmakers: Optional[str] = None,
    ) -> List[dict]:
        """
        Get featured-market odds for a sport.

        Args:
            sport: Sport key (e.g., 'americanfootball_nfl')
            markets: Comma-separated markets; defaults to the client's markets
            bookmakers: Optional comma-separated bookmaker keys
        """
        params = {
            "regions": self.regions,
            "markets": markets or self.markets,
            "oddsFormat": "american",
            "dateFormat": "iso",
        }
        if bookmakers:
            params["bookmakers"] = bookmakers
        data = await self._get_json(f"/sports/{sport}/odds", params)
        if not isinstance(data, list):
            raise FeedError(f"Unexpected odds payload for {sport}: {type(data).__name__}")
        return data

    async def get_event_odds(self, sport: str, event_id: str, markets: str) -> dict:
        """Odds for one event; needed for player props and alternate lines."""
        data = await self._get_json(
            f"/sports/{sport}/events/{event_id}/odds",
            {"regions": self.regions, "markets": markets, "oddsFormat": "american", "dateFormat": "iso"},
        )
        if not isinstance(data, dict):
            raise FeedError(f"Unexpected event payload for {event_id}")
        return data

    @staticmethod
    def merge_event_odds(game: dict, event: dict) -> dict:
        """Copy of a featured-odds game with an event response's markets folded in.

        Markets join the matching bookmaker; bookmakers only present in the
        event response are appended.
        """
        bookmakers = [dict(b, markets=list(b.get("markets") or [])) for b in game.get("bookmakers") or []]
        by_key = {b.get("key"): b for b in bookmakers}
        for book in event.get("bookmakers") or []:
            existing = by_key.get(book.get("key"))
            if existing is None:
                existing = dict(book, markets=[])
                bookmakers.append(existing)
                by_key[book.get("key")] = existing
            existing["markets"].extend(book.get("markets") or [])
        return dict(game, bookmakers=bookmakers)

    async def _event_game(self, sport: str, game: dict, markets: str) -> dict:
        try:
            event = await self.get_event_odds(sport, game["id"], markets)
        except FeedError as e:
            logger.warning(f"Event markets failed for {sport}/{game['id']}, keeping featured odds: {e}")
            return game
        return self.merge_event_odds(game, event)

    async def with_event_markets(self, sport: str, games: List[dict]) -> List[dict]:
        """Attach per-event markets to the first ``max_events`` games of a sport.

        A failing event keeps its featured markets only.
        """
        markets = self.event_markets.get(sport)
        if not markets or self.max_events <= 0:
            return games
        head = [g for g in games[:self.max_events] if g.get("id")]
        enriched = await asyncio.gather(*(self._event_game(sport, g, markets) for g in head))
        by_id = {g["id"]: g for g in enriched}
        return [by_id.get(g.get("id"), g) for g in games]

    async def fetch_games(self, sports: Iterable[str]) -> List[dict]:
        """Snapshot across sports, in the order given, with event markets attached.

        A failing sport is logged and skipped; FeedError only when every
        sport fails.
        """
        sports = list(sports)
        games: List[dict] = []
        errors: List[FeedError] = []
        for sport in sports:
            try:
                sport_games = await self.get_odds(sport)
            except FeedError as e:
                logger.warning(f"Odds fetch failed for {sport}: {e}")
                errors.append(e)
                continue
            games.extend(await self.with_event_markets(sport, sport_games))
        if sports and len(errors) == len(sports):
            raise errors[0]
        logger.info(f"Fetched {len(games)} games across {len(sports)} sports "
                    f"(quota remaining: {self.requests_remaining})")
        return games

    def get_quota(self) -> dict:
        """Get current API quota status"""
        return {
            "requests_remaining": self.requests_remaining,
            "requests_used": self.requests_used,
        }

    async def close(self):
        """Close client on application shutdown - MUST be called."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Odds feed client closed")
