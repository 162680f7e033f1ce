"""Combine a historical candle series with the latest polled tick."""

from typing import Any, Iterable, Sequence

from coinpulse.core.time_utils import DAY_MS, HOUR_MS, to_ms, whole_seconds
from coinpulse.core.types import Candle, CandleSeries, Interval, LiveQuote, LiveTick

_BUCKET_MS: dict[str, int] = {"hourly": HOUR_MS, "daily": DAY_MS}


def as_candle(row: Sequence[float]) -> Candle:
    """Accept any ordered 5-sequence as a candle."""

    if isinstance(row, Candle):
        return row
    timestamp_ms, open_, high, low, close = row
    return Candle(int(timestamp_ms), open_, high, low, close)


def merge(historical: Iterable[Sequence[float]], live: Sequence[float] | None) -> CandleSeries:
    """Replace the last candle when the tick shares its timestamp, else append; then sort.

    Returns a new tuple; ``historical`` is never modified. Duplicate timestamps
    away from the tail are passed through as received.
    """

    series = tuple(as_candle(row) for row in historical)
    if live is None:
        return series

    tick = as_candle(live)
    if series and series[-1].timestamp_ms == tick.timestamp_ms:
        merged = series[:-1] + (tick,)
    else:
        merged = series + (tick,)

    return tuple(sorted(merged, key=lambda candle: candle.timestamp_ms))


def bucket_start(timestamp_ms: int, interval: Interval | str) -> int:
    size = _BUCKET_MS.get(interval, HOUR_MS)
    return (timestamp_ms // size) * size


def build_live_tick(quote: LiveQuote, interval: Interval | str, previous: Sequence[float] | None = None) -> LiveTick:
    """Turn a quote into the in-progress candle for its bucket.

    When ``previous`` already covers the same bucket it is refined: its open is
    kept and its high/low widened to include the new price.
    """

    prior = as_candle(previous) if previous is not None else None
    price = quote.price
    start = bucket_start(to_ms(quote.timestamp), interval)
    if prior is not None and prior.timestamp_ms == start:
        return Candle(
            timestamp_ms=start,
            open=prior.open,
            high=max(prior.high, price),
            low=min(prior.low, price),
            close=price,
        )
    return Candle(timestamp_ms=start, open=price, high=price, low=price, close=price)


def to_chart_points(series: Iterable[Sequence[float]]) -> list[dict[str, Any]]:
    """Convert to seconds-based points for charting surfaces."""

    candles = [as_candle(row) for row in series]
    return [
        {
            "time": whole_seconds(candle.timestamp_ms),
            "open": candle.open,
            "high": candle.high,
            "low": candle.low,
            "close": candle.close,
        }
        for candle in candles
        if candle.timestamp_ms > 0
    ]
