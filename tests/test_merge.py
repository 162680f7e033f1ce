"""Live tick merging, tick construction and chart-boundary conversion."""

from coinpulse.core.types import Candle, LiveQuote
from coinpulse.market.merge import build_live_tick, merge, to_chart_points


def _series(*rows: tuple[float, ...]) -> tuple[Candle, ...]:
    return tuple(Candle(int(row[0]), *row[1:]) for row in rows)


def test_missing_tick_returns_history_unchanged() -> None:
    historical = _series((1000, 1, 2, 0.5, 1.5), (2000, 1.5, 2.5, 1, 2))

    assert merge(historical, None) == historical


def test_tick_at_last_timestamp_replaces_last_candle() -> None:
    historical = _series((1000, 1, 2, 0.5, 1.5), (2000, 1.5, 2.5, 1, 2))
    live = Candle(2000, 2, 3, 1.5, 2.5)

    merged = merge(historical, live)

    assert merged == ((1000, 1, 2, 0.5, 1.5), (2000, 2, 3, 1.5, 2.5))
    assert len(merged) == len(historical)


def test_newer_tick_is_appended() -> None:
    historical = _series((1000, 1, 2, 0.5, 1.5))

    merged = merge(historical, Candle(2000, 2, 2, 2, 2))

    assert [candle.timestamp_ms for candle in merged] == [1000, 2000]


def test_out_of_order_tick_is_sorted_into_place() -> None:
    historical = _series((1000, 1, 1, 1, 1), (3000, 3, 3, 3, 3))

    merged = merge(historical, Candle(2000, 2, 2, 2, 2))

    assert [candle.timestamp_ms for candle in merged] == [1000, 2000, 3000]


def test_inner_duplicates_pass_through_and_order_is_stable() -> None:
    historical = _series((1000, 1, 1, 1, 1), (1000, 9, 9, 9, 9), (2000, 2, 2, 2, 2))

    merged = merge(historical, Candle(3000, 3, 3, 3, 3))

    assert [candle.timestamp_ms for candle in merged] == [1000, 1000, 2000, 3000]
    assert merged[0].open == 1
    assert merged[1].open == 9


def test_output_is_non_decreasing_and_input_untouched() -> None:
    historical = [Candle(5000, 5, 5, 5, 5), Candle(1000, 1, 1, 1, 1)]
    snapshot = list(historical)

    merged = merge(historical, Candle(3000, 3, 3, 3, 3))

    stamps = [candle.timestamp_ms for candle in merged]
    assert stamps == sorted(stamps)
    assert historical == snapshot


def test_merge_into_empty_history_yields_the_tick() -> None:
    assert merge((), Candle(1000, 1, 1, 1, 1)) == ((1000, 1, 1, 1, 1),)


def _quote(price: float, timestamp: int) -> LiveQuote:
    return LiveQuote(coin="BTC", price=price, change24h=0.0, market_cap=0.0, volume24h=0.0, timestamp=timestamp)


def test_live_tick_is_bucketed_to_interval_start() -> None:
    tick = build_live_tick(_quote(42_000.0, 1_704_069_000_000), "hourly")

    assert tick == (1_704_067_200_000, 42_000.0, 42_000.0, 42_000.0, 42_000.0)


def test_live_tick_refines_previous_candle_in_same_bucket() -> None:
    previous = Candle(1_704_067_200_000, 41_000.0, 41_500.0, 40_900.0, 41_200.0)

    tick = build_live_tick(_quote(42_000.0, 1_704_069_000_000), "hourly", previous)

    assert tick == (1_704_067_200_000, 41_000.0, 42_000.0, 40_900.0, 42_000.0)


def test_live_tick_accepts_second_timestamps() -> None:
    tick = build_live_tick(_quote(1.0, 1_704_069_000), "daily")

    assert tick.timestamp_ms == 1_704_067_200_000


def test_chart_points_are_in_seconds() -> None:
    points = to_chart_points(_series((1_704_067_200_000, 1, 2, 0.5, 1.5), (0, 1, 1, 1, 1)))

    assert points == [{"time": 1_704_067_200, "open": 1, "high": 2, "low": 0.5, "close": 1.5}]


def test_plain_tuples_and_lists_are_accepted() -> None:
    historical = [(1000, 1, 2, 0.5, 1.5), [2000, 1.5, 2.5, 1, 2]]

    merged = merge(historical, (2000, 2, 3, 1.5, 2.5))

    assert merged == ((1000, 1, 2, 0.5, 1.5), (2000, 2, 3, 1.5, 2.5))
    assert merged[-1].close == 2.5


def test_chart_points_floor_sub_second_timestamps() -> None:
    points = to_chart_points([(1_704_067_200_999, 1, 1, 1, 1)])

    assert points[0]["time"] == 1_704_067_200
