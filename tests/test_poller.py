"""Poll loop state handling between ticks."""

import pytest

from coinpulse.core.types import Candle, LiveQuote, RangeRequest
from coinpulse.services.poller.main import ChartState, _poll_coin

HOUR = 3_600_000
T0 = 1_704_067_200_000


class StubPipeline:
    def __init__(self, series, quotes) -> None:
        self.series = series
        self.quotes = list(quotes)
        self.history_calls = 0

    async def get_coin_ohlcv(self, raw_id, vs_currency="usd", days=1, interval="hourly"):
        self.history_calls += 1
        return self.series

    async def get_live_quote(self, raw_id):
        return self.quotes.pop(0) if self.quotes else None


def _quote(price: float, timestamp: int) -> LiveQuote:
    return LiveQuote(coin="BTC", price=price, change24h=0.0, market_cap=0.0, volume24h=0.0, timestamp=timestamp)


@pytest.mark.asyncio
async def test_ticks_refine_the_in_progress_bucket() -> None:
    history = (Candle(T0 - HOUR, 10, 11, 9, 10.5),)
    pipeline = StubPipeline(history, [_quote(12.0, T0 + 60_000), _quote(8.0, T0 + 120_000)])
    state = ChartState(coin="bitcoin-1")
    request = RangeRequest()

    first = await _poll_coin(pipeline, state, request, refresh_s=3600)
    second = await _poll_coin(pipeline, state, request, refresh_s=3600)

    assert pipeline.history_calls == 1
    assert first["candles"] == 2
    assert second["candles"] == 2
    assert second["last_candle"] == [T0, 12.0, 12.0, 8.0, 8.0]
    assert state.historical == history


@pytest.mark.asyncio
async def test_missing_quote_emits_history_only() -> None:
    history = (Candle(T0, 1, 1, 1, 1),)
    state = ChartState(coin="bitcoin-1")

    event = await _poll_coin(StubPipeline(history, []), state, RangeRequest(), refresh_s=3600)

    assert event["type"] == "chart_update"
    assert event["quote"] is None
    assert event["last_candle"] == [T0, 1, 1, 1, 1]


def test_package_entrypoint_runs_the_poller() -> None:
    from coinpulse.services.poller import __main__ as entrypoint
    from coinpulse.services.poller.main import main

    assert entrypoint.main is main
