"""Auto-refresh runner for the odds snapshot.

Periodically re-fetches the raw feed and re-runs the pipeline against it.
The pipeline itself is pure; all concurrency lives here:

- a cancellable asyncio task drives the interval
- a cooldown coalesces refreshes requested in quick succession
- retention: a failed background refresh keeps the previous snapshot and
  result, a failed initial load clears them and surfaces the error
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from sharpline.errors import FeedError
from sharpline.models import PipelineConfig, PipelineResult
from sharpline.pipeline import run_pipeline

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 45.0
DEFAULT_COOLDOWN = 10.0


async def run_pipeline_async(
    games: List[dict], config: PipelineConfig, now: Optional[datetime] = None
) -> PipelineResult:
    """run_pipeline on the default executor so the event loop keeps serving requests."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, run_pipeline, games, config, now)


class OddsRefresher:
    """Holds the latest feed snapshot and the pipeline result computed from it."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[List[dict]]],
        interval: float = DEFAULT_INTERVAL,
        cooldown: float = DEFAULT_COOLDOWN,
        config_factory: Callable[[], PipelineConfig] = PipelineConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.cooldown = cooldown
        self._fetch = fetch
        self._config_factory = config_factory
        self._clock = clock
        self._lock = asyncio.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._games: Optional[List[dict]] = None
        self._result: Optional[PipelineResult] = None
        self._last_error: Optional[str] = None
        self._last_attempt: Optional[float] = None
        self._last_success: Optional[datetime] = None
        self._refresh_count = 0
        self._failure_count = 0

    async def start(self):
        """Start the periodic refresh loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Odds refresher starting (interval={self.interval:.0f}s)")

    async def stop(self):
        """Stop the loop; no pipeline runs happen after this returns."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Odds refresher stopped")

    async def _refresh_loop(self):
        while self._running:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected refresh error: {e}")
            await asyncio.sleep(self.interval)

    def _in_cooldown(self) -> bool:
        return self._last_attempt is not None and self._clock() - self._last_attempt < self.cooldown

    async def refresh(self, force: bool = False) -> bool:
        """Fetch a new snapshot and recompute the result.

        Returns True when a new result was produced, False when the request
        was coalesced by the cooldown or the fetch failed.
        """
        if not force and self._in_cooldown():
            logger.debug("Refresh suppressed by cooldown")
            return False

        async with self._lock:
            if not force and self._in_cooldown():
                return False
            self._last_attempt = self._clock()
            initial = self._games is None

            try:
                games = await self._fetch()
            except FeedError as e:
                self._failure_count += 1
                self._last_error = str(e)
                if initial:
                    self._result = None
                    logger.error(f"Initial odds load failed: {e}")
                else:
                    logger.warning(f"Background refresh failed, keeping previous snapshot: {e}")
                return False

            result = await run_pipeline_async(games, self._config_factory())
            self._games = games
            self._result = result
            self._last_error = None
            self._last_success = result.generated_at
            self._refresh_count += 1
            logger.info(
                f"Odds refreshed: {len(games)} games, {len(result.picks)} picks"
            )
            return True

    def run(self, config: PipelineConfig) -> PipelineResult:
        """Run the pipeline with a caller config against the held snapshot.

        Raises:
            FeedError: no snapshot has been loaded.
        """
        if self._games is None:
            raise FeedError(self._last_error or "No odds snapshot loaded yet")
        return run_pipeline(self._games, config)

    async def run_async(self, config: PipelineConfig) -> PipelineResult:
        """Same as run(), computed off the event loop."""
        if self._games is None:
            raise FeedError(self._last_error or "No odds snapshot loaded yet")
        return await run_pipeline_async(self._games, config)

    @property
    def games(self) -> Optional[List[dict]]:
        return self._games

    @property
    def result(self) -> Optional[PipelineResult]:
        return self._result

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def ready(self) -> bool:
        return self._games is not None

    @property
    def status(self) -> dict:
        return {
            "running": self._running,
            "ready": self.ready,
            "last_refresh": self._last_success.isoformat() if self._last_success else None,
            "last_error": self._last_error,
            "refresh_count": self._refresh_count,
            "failure_count": self._failure_count,
            "game_count": len(self._games) if self._games is not None else 0,
            "interval_seconds": self.interval,
            "cooldown_seconds": self.cooldown,
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }
