"""Unit tests for OddsRefresher."""
import asyncio
import threading

import pytest

from api.services import refresher as refresher_module
from api.services.refresher import OddsRefresher
from sharpline.errors import FeedError
from sharpline.models import PipelineConfig


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class StubFeed:
    """Async fetch callable returning queued games or raising queued errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        response = self.responses[min(self.calls, len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def _games(live_feed):
    return [live_feed.game([
        live_feed.moneyline("draftkings", -150, 130),
        live_feed.moneyline("fanduel", -145, 125),
    ])]


@pytest.mark.asyncio
async def test_initial_failure_surfaces_error():
    refresher = OddsRefresher(StubFeed(FeedError("feed down")), cooldown=0)
    assert await refresher.refresh() is False
    assert refresher.ready is False
    assert refresher.result is None
    assert refresher.last_error == "feed down"
    with pytest.raises(FeedError, match="feed down"):
        refresher.run(PipelineConfig())


@pytest.mark.asyncio
async def test_background_failure_keeps_previous_result(live_feed):
    games = _games(live_feed)
    refresher = OddsRefresher(StubFeed(games, FeedError("timeout")), cooldown=0)
    assert await refresher.refresh() is True
    first = refresher.result
    assert len(first.picks) == 1

    assert await refresher.refresh() is False
    assert refresher.result is first
    assert refresher.games is games
    assert refresher.last_error == "timeout"
    assert refresher.ready is True
    assert refresher.run(PipelineConfig()).picks == first.picks


@pytest.mark.asyncio
async def test_recovery_clears_error(live_feed):
    refresher = OddsRefresher(StubFeed(FeedError("down"), _games(live_feed)), cooldown=0)
    await refresher.refresh()
    assert await refresher.refresh() is True
    assert refresher.last_error is None
    assert refresher.status["failure_count"] == 1
    assert refresher.status["refresh_count"] == 1


@pytest.mark.asyncio
async def test_cooldown_coalesces_requests(live_feed):
    clock = FakeClock()
    fetch = StubFeed(_games(live_feed))
    refresher = OddsRefresher(fetch, cooldown=10, clock=clock)

    assert await refresher.refresh() is True
    assert await refresher.refresh() is False
    clock.value += 9.9
    assert await refresher.refresh() is False
    assert fetch.calls == 1

    clock.value += 0.2
    assert await refresher.refresh() is True
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_force_bypasses_cooldown(live_feed):
    fetch = StubFeed(_games(live_feed))
    refresher = OddsRefresher(fetch, cooldown=60, clock=FakeClock())
    await refresher.refresh()
    assert await refresher.refresh(force=True) is True
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_concurrent_refreshes_fetch_once(live_feed):
    fetch = StubFeed(_games(live_feed))
    refresher = OddsRefresher(fetch, cooldown=60, clock=FakeClock())
    results = await asyncio.gather(*(refresher.refresh() for _ in range(5)))
    assert results.count(True) == 1
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_config_factory_drives_result(live_feed):
    refresher = OddsRefresher(
        StubFeed(_games(live_feed)),
        cooldown=0,
        config_factory=lambda: PipelineConfig(bet_type="arbitrage"),
    )
    await refresher.refresh()
    assert refresher.result.config.bet_type == "arbitrage"
    assert refresher.result.picks == ()


@pytest.mark.asyncio
async def test_start_and_stop(live_feed):
    fetch = StubFeed(_games(live_feed))
    refresher = OddsRefresher(fetch, interval=0.01, cooldown=0)
    await refresher.start()
    await asyncio.sleep(0.05)
    assert refresher.status["running"] is True
    await refresher.stop()

    calls = fetch.calls
    assert calls >= 1
    assert refresher.status["running"] is False
    await asyncio.sleep(0.03)
    assert fetch.calls == calls


@pytest.mark.asyncio
async def test_status_shape():
    refresher = OddsRefresher(StubFeed([]), interval=45, cooldown=10)
    status = refresher.status
    assert status["ready"] is False
    assert status["last_refresh"] is None
    assert status["game_count"] == 0
    assert status["interval_seconds"] == 45
    assert status["cooldown_seconds"] == 10
    assert "checked_at" in status


@pytest.mark.asyncio
async def test_pipeline_runs_off_the_event_loop(live_feed, monkeypatch):
    threads = []
    real_run = refresher_module.run_pipeline

    def recording_run(*args):
        threads.append(threading.get_ident())
        return real_run(*args)

    monkeypatch.setattr(refresher_module, "run_pipeline", recording_run)
    refresher = OddsRefresher(StubFeed(_games(live_feed)), cooldown=0)
    assert await refresher.refresh() is True
    result = await refresher.run_async(PipelineConfig())

    assert len(result.picks) == 1
    assert len(threads) == 2
    assert threading.get_ident() not in threads


@pytest.mark.asyncio
async def test_run_async_without_snapshot_raises():
    refresher = OddsRefresher(StubFeed(FeedError("feed down")), cooldown=0)
    await refresher.refresh()
    with pytest.raises(FeedError, match="feed down"):
        await refresher.run_async(PipelineConfig())
