"""Live chart poller that refreshes history, polls quotes, merges ticks and emits JSON lines."""

import asyncio
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass
from typing import Any

from coinpulse.core.config import Settings, get_settings
from coinpulse.core.logging import configure_logging
from coinpulse.core.types import CandleSeries, LiveQuote, RangeRequest
from coinpulse.market.merge import build_live_tick, merge
from coinpulse.market.pipeline import MarketDataPipeline


@dataclass(slots=True)
class ChartState:
    """Per-coin series held between poll ticks."""

    coin: str
    historical: CandleSeries = ()
    merged: CandleSeries = ()
    refreshed_at: float | None = None


def _history_due(state: ChartState, now: float, refresh_s: float) -> bool:
    return state.refreshed_at is None or now - state.refreshed_at >= refresh_s


def _apply_quote(state: ChartState, quote: LiveQuote | None, interval: str) -> CandleSeries:
    if quote is None:
        return merge(state.historical, None)

    if state.merged:
        previous = state.merged[-1]
    elif state.historical:
        previous = state.historical[-1]
    else:
        previous = None
    return merge(state.historical, build_live_tick(quote, interval, previous))


def _build_update_event(state: ChartState, interval: str, quote: LiveQuote | None) -> dict[str, Any]:
    last = state.merged[-1] if state.merged else None
    return {
        "type": "chart_update",
        "coin": state.coin,
        "interval": interval,
        "candles": len(state.merged),
        "last_candle": list(last) if last is not None else None,
        "quote": quote.to_payload() if quote is not None else None,
    }


def _emit_event(event: dict[str, Any]) -> None:
    line = json.dumps(event, ensure_ascii=True, separators=(",", ":"))
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


async def _poll_coin(
    pipeline: MarketDataPipeline,
    state: ChartState,
    request: RangeRequest,
    refresh_s: float,
) -> dict[str, Any]:
    now = time.monotonic()
    if _history_due(state, now, refresh_s):
        historical, quote = await asyncio.gather(
            pipeline.get_coin_ohlcv(state.coin, request.vs_currency, request.days, request.interval),
            pipeline.get_live_quote(state.coin),
        )
        state.historical = historical
        state.merged = ()
        state.refreshed_at = now
    else:
        quote = await pipeline.get_live_quote(state.coin)

    state.merged = _apply_quote(state, quote, request.interval)
    return _build_update_event(state, request.interval, quote)


def _request_shutdown(
    shutdown_event: asyncio.Event, logger: logging.Logger, signal_name: str
) -> None:
    if shutdown_event.is_set():
        return
    logger.info("poller_shutdown_signal", extra={"signal": signal_name})
    shutdown_event.set()


def _install_signal_handlers(shutdown_event: asyncio.Event, logger: logging.Logger) -> None:
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(
                sig,
                _request_shutdown,
                shutdown_event,
                logger,
                sig.name,
            )
        except NotImplementedError:
            signal_name = sig.name
            signal.signal(
                sig,
                lambda *_, signal_name=signal_name: _request_shutdown(
                    shutdown_event, logger, signal_name
                ),
            )


async def _poll_loop(
    settings: Settings,
    pipeline: MarketDataPipeline,
    shutdown_event: asyncio.Event,
) -> None:
    request = RangeRequest.build(days=settings.POLL_DAYS, interval=settings.POLL_INTERVAL_NAME)
    states = {coin: ChartState(coin=coin) for coin in settings.poll_coins()}
    poll_interval_s = settings.poll_interval_s()

    while not shutdown_event.is_set():
        for state in states.values():
            if shutdown_event.is_set():
                break
            event = await _poll_coin(pipeline, state, request, settings.POLL_HISTORY_REFRESH_S)
            _emit_event(event)

        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=poll_interval_s)
        except asyncio.TimeoutError:
            pass


async def _run() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, service="poller")
    logger = logging.getLogger(__name__)
    shutdown_event = asyncio.Event()

    coins = settings.poll_coins()
    if not coins:
        logger.error("poller_invalid_coins")
        return 1

    _install_signal_handlers(shutdown_event, logger)
    logger.info(
        "poller_startup",
        extra={
            "coins": list(coins),
            "poll_interval_s": settings.poll_interval_s(),
            "history_refresh_s": settings.POLL_HISTORY_REFRESH_S,
            "days": settings.POLL_DAYS,
            "interval": settings.POLL_INTERVAL_NAME,
        },
    )

    async with MarketDataPipeline(settings) as pipeline:
        await _poll_loop(settings, pipeline, shutdown_event)

    logger.info("poller_shutdown")
    return 0


def main() -> int:
    """Run the poller until interrupted."""

    try:
        return asyncio.run(_run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
