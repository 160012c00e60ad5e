"""Tests for the filter pipeline."""
from datetime import timedelta

import pytest

from sharpline.errors import ConfigError
from sharpline.models import BookLine, Game, Pick, PipelineConfig
from sharpline.pipeline import (
    drop_excluded_operator,
    drop_synthetic_unders,
    drop_thin_picks,
    drop_unreliable_alternates,
    filter_bet_type,
    run_pipeline,
    sort_picks,
    validate_config,
)

GAME = Game(id="g", sport_key="basketball_nba", sport_title="NBA", home_team="H", away_team="A")


def _row(book: str, price: int, ev=None, synthetic: bool = False) -> BookLine:
    p = 100 / (price + 100) if price > 0 else -price / (-price + 100)
    return BookLine(book_key=book, book_name=book.title(), price=price, line=None,
                    implied_probability=p, ev=ev, synthetic=synthetic)


def _pick(ev=None, book_count: int = 1, kind: str = "standard", side: str = "H",
          rows=None, synthetic_only: bool = False) -> Pick:
    rows = rows or (_row("draftkings", -110, ev),)
    best = max(rows, key=lambda r: r.price)
    return Pick(
        game=GAME,
        market_key="player_points" if kind == "prop" else "h2h",
        market_kind=kind,
        market_label="x",
        side=side,
        line=None,
        best_price=best.price,
        best_book=best.book_name,
        best_book_key=best.book_key,
        book_count=book_count,
        books=tuple(rows),
        ev=ev,
        synthetic_only=synthetic_only,
    )


def _rich_feed(feed):
    return [
        feed.game([
            feed.moneyline("draftkings", -150, 130),
            feed.moneyline("fanduel", -145, 125),
            feed.moneyline("betmgm", -155, 135),
            feed.moneyline("pinnacle", -148, 138),
            feed.total("draftkings", 220.5, -110, -110),
            feed.total("fanduel", 220.5, -105, -115),
            feed.total("betmgm", 221.5, -110, -110),
            feed.total("pinnacle", 220.5, -108, -108),
            feed.total("betrivers", 220.5, -112, -102),
            feed.prop("draftkings", "Jayson Tatum", 24.5, -115, -105),
            feed.prop("prizepicks", "Jayson Tatum", 24.5, -119),
        ]),
        feed.game([
            feed.moneyline("draftkings", 110, -130),
            feed.moneyline("fanduel", 105, -125),
        ], game_id="game-2", home="Miami Heat", away="Chicago Bulls"),
    ]


# --- config ---

def test_invalid_config_is_rejected():
    with pytest.raises(ConfigError):
        validate_config(PipelineConfig(bet_type="parlay"))
    with pytest.raises(ConfigError):
        validate_config(PipelineConfig(date="tomorrow"))
    with pytest.raises(ConfigError):
        validate_config(PipelineConfig(timezone="Mars/Olympus"))
    with pytest.raises(ConfigError):
        validate_config(PipelineConfig(default_side=2))
    with pytest.raises(ConfigError):
        validate_config(PipelineConfig(sport=" , "))


def test_config_normalizes_sportsbooks():
    config = validate_config(PipelineConfig(sportsbooks=(" DraftKings ", "", "FANDUEL")))
    assert config.sportsbooks == ("draftkings", "fanduel")


# --- stages ---

def test_sort_puts_valid_ev_first():
    picks = [
        _pick(None, book_count=2),
        _pick(1.5),
        _pick(None, book_count=5),
        _pick(-2.0),
        _pick(4.0),
    ]
    ordered = sort_picks(picks)
    assert [p.ev for p in ordered] == [4.0, 1.5, -2.0, None, None]
    assert [p.book_count for p in ordered[3:]] == [5, 2]


def test_sort_is_stable():
    a, b = _pick(2.0, side="first"), _pick(2.0, side="second")
    assert [p.side for p in sort_picks([a, b])] == ["first", "second"]
    assert [p.side for p in sort_picks([b, a])] == ["second", "first"]


def test_synthetic_under_toggle():
    synthetic_under = _pick(None, side="Under", synthetic_only=True)
    real_under = _pick(None, side="Under")
    picks = [synthetic_under, real_under]
    assert drop_synthetic_unders(picks, suppress=False) == picks
    assert drop_synthetic_unders(picks, suppress=True) == [real_under]


def test_thin_picks_floor():
    picks = [_pick(1.0, book_count=2), _pick(1.0, book_count=6)]
    assert drop_thin_picks(picks, 0) == picks
    assert [p.book_count for p in drop_thin_picks(picks, 4)] == [6]


def test_unreliable_operator_dropped_from_alternates_only():
    rows = (_row("draftkings", -110), _row("mybookieag", 120))
    alternate = _pick(1.0, kind="alternate", rows=rows)
    standard = _pick(1.0, kind="standard", rows=rows)
    assert drop_unreliable_alternates([alternate, standard]) == [standard]


def test_bet_type_split():
    prop, straight = _pick(1.0, kind="prop"), _pick(1.0)
    assert filter_bet_type([prop, straight], "straight") == [straight]
    assert filter_bet_type([prop, straight], "props") == [prop]


def test_excluded_operator_recomputes_best():
    pick = _pick(3.0, rows=(_row("draftkings", -110, 1.0), _row("prophetx", 105, 3.0)))
    assert pick.best_book_key == "prophetx"
    [stripped] = drop_excluded_operator([pick])
    assert stripped.best_book_key == "draftkings"
    assert stripped.best_price == -110
    assert stripped.ev == 1.0
    assert stripped.book_count == 1
    assert pick.best_book_key == "prophetx"


def test_excluded_operator_only_book_removes_pick():
    pick = _pick(None, rows=(_row("prophetx", 105),))
    assert drop_excluded_operator([pick, None]) == [None, None]


# --- full runs ---

def test_pipeline_is_deterministic(feed, now):
    games = _rich_feed(feed)
    for bet_type in ("straight", "props", "arbitrage", "middles", "exchanges"):
        config = PipelineConfig(bet_type=bet_type)
        assert run_pipeline(games, config, now) == run_pipeline(games, config, now)


def test_straight_mode_excludes_props(feed, now):
    result = run_pipeline(_rich_feed(feed), PipelineConfig(), now)
    assert result.picks
    assert not any(p.is_prop for p in result.picks)
    assert result.game_count == 2


def test_props_mode_only_props(feed, now):
    result = run_pipeline(_rich_feed(feed), PipelineConfig(bet_type="props"), now)
    assert result.picks
    assert all(p.is_prop for p in result.picks)


def test_output_properties_hold(feed, now):
    result = run_pipeline(_rich_feed(feed), PipelineConfig(min_data_points=1), now)
    for pick in result.picks:
        assert abs(pick.best_price) >= 100
        assert all(abs(row.price) >= 100 for row in pick.books)
        assert pick.ev is None or abs(pick.ev) <= 50
    evs = [p.ev for p in result.picks if p.ev is not None]
    assert evs == sorted(evs, reverse=True)


def test_started_games_dropped_but_props_exempt(feed, now):
    started = now - timedelta(minutes=30)
    games = [feed.game([
        feed.moneyline("draftkings", -150, 130),
        feed.prop("draftkings", "Jayson Tatum", 24.5, -115, -105),
    ], commence=started)]
    assert run_pipeline(games, PipelineConfig(), now).picks == ()
    assert len(run_pipeline(games, PipelineConfig(bet_type="props"), now).picks) == 1


def test_stale_books_never_reach_aggregation(feed, now):
    games = [feed.game([
        feed.moneyline("draftkings", -150, 130),
        feed.moneyline("fanduel", -145, 125),
        feed.book("betmgm", [feed.market("h2h", [
            feed.outcome("Boston Celtics", 200),
            feed.outcome("New York Knicks", 200),
        ], last_update=now - timedelta(minutes=30))]),
    ])]
    [pick] = run_pipeline(games, PipelineConfig(), now).picks
    assert {row.book_key for row in pick.books} == {"draftkings", "fanduel"}
    assert pick.best_price != 200


def test_sport_and_date_filters(feed, now):
    late = now.replace(hour=23) + timedelta(hours=2)  # 01:00Z next day, still the 19th in New York
    games = [
        feed.game([feed.moneyline("draftkings", -150, 130)], commence=late),
        feed.game([feed.moneyline("draftkings", -150, 130)], game_id="nfl-1", sport_key="americanfootball_nfl"),
    ]
    assert run_pipeline(games, PipelineConfig(sport="nba"), now).game_count == 1
    assert run_pipeline(games, PipelineConfig(sport="nba,nfl"), now).game_count == 2
    assert run_pipeline(games, PipelineConfig(sport="all"), now).game_count == 2
    assert run_pipeline(games, PipelineConfig(date="2026-10-19"), now).game_count == 2
    assert run_pipeline(games, PipelineConfig(date="2026-10-20"), now).game_count == 0
    assert run_pipeline(games, PipelineConfig(date="2026-10-20", timezone="UTC"), now).game_count == 1


def test_market_type_filter(feed, now):
    games = [feed.game([
        feed.moneyline("draftkings", -150, 130),
        feed.total("draftkings", 220.5, -110, -110),
        feed.total("draftkings", 110.5, -110, -110, key="totals_h1"),
    ])]
    keys = lambda mt: {p.market_key for p in run_pipeline(games, PipelineConfig(market_type=mt), now).picks}
    assert keys("all") == {"h2h", "totals", "totals_h1"}
    assert keys("totals") == {"totals"}
    assert keys("moneyline") == {"h2h"}
    assert keys("1st_half") == {"totals_h1"}


def test_synthetic_under_pick_through_pipeline(feed, now):
    games = [feed.game([
        feed.prop("prizepicks", "Jayson Tatum", 24.5, -119),
        feed.prop("underdog", "Jayson Tatum", 24.5, -119),
    ])]
    config = PipelineConfig(bet_type="props", default_side=1)
    [pick] = run_pipeline(games, config, now).picks
    assert pick.side == "Under" and pick.synthetic_only

    suppressed = PipelineConfig(bet_type="props", default_side=1, suppress_synthetic_unders=True)
    assert run_pipeline(games, suppressed, now).picks == ()


def test_middles_and_exchange_modes(feed, now):
    games = [feed.game([
        feed.total("novig", 220.5, -110, -110),
        feed.total("draftkings", 220.5, -105, -115),
        feed.total("fanduel", 223.5, -110, -110),
    ])]
    middles = run_pipeline(games, PipelineConfig(bet_type="middles"), now).middles
    assert [m.gap for m in middles] == [3.0]
    edges = run_pipeline(games, PipelineConfig(bet_type="exchanges"), now).exchange_edges
    assert [(e.book_key, e.side) for e in edges] == [("draftkings", "Over")]


def test_empty_input(now):
    result = run_pipeline([], PipelineConfig(), now)
    assert result.picks == () and result.game_count == 0
