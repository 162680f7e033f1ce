"""Secondary provider A: Binance spot klines keyed by a plain ticker such as ``ETHUSDT``."""

from typing import Any, Callable

from coinpulse.core.config import Settings
from coinpulse.core.time_utils import now_ms
from coinpulse.core.types import CandleSeries, CoinIdentity, CoinRef, ProviderOutcome, RangeRequest, Unavailable
from coinpulse.market.cache import cache_key
from coinpulse.market.errors import EmptyResponseError, MalformedResponseError, NoMappingError, ProviderError
from coinpulse.market.http import JsonFetcher
from coinpulse.market.providers.base import ProviderClient, candle_from_row
from coinpulse.market.ranges import binance_interval, binance_limit, clamp_days, trailing_window_ms

KLINES_PATH = "/api/v3/klines"


class BinanceClient(ProviderClient):
    name = "binance"

    def __init__(
        self,
        fetcher: JsonFetcher,
        settings: Settings,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        super().__init__(fetcher)
        self._base_url = settings.BINANCE_BASE_URL
        self._quote_suffix = settings.QUOTE_SUFFIX.upper()
        self._ttl_s = settings.BINANCE_CACHE_TTL_S
        self._clock = clock

    def market_symbol(self, ref: CoinRef, identity: CoinIdentity | None) -> str:
        base = identity.symbol if identity is not None else (ref.symbol or "")
        return f"{base.upper()}{self._quote_suffix}" if base else ""

    def _classify(self, error: ProviderError) -> ProviderOutcome:
        # Every failure here is terminal for this provider; the chain moves on.
        return Unavailable(reason=str(error), kind=error.kind)

    async def _fetch_candles(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None,
    ) -> CandleSeries:
        symbol = self.market_symbol(ref, identity)
        if not symbol:
            raise NoMappingError(self.name, f"no ticker for {ref.raw_id!r}")

        days = clamp_days(request.days)
        interval = binance_interval(request.interval)
        limit = binance_limit(days, request.interval)
        start_ms, end_ms = trailing_window_ms(days, self._clock())
        url = self._base_url + KLINES_PATH
        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": str(limit),
            "startTime": str(start_ms),
            "endTime": str(end_ms),
        }
        key = cache_key(url, {"symbol": symbol, "interval": interval, "days": days})

        payload = await self._fetcher.get_json(self.name, url, params=params, key=key, ttl_s=self._ttl_s)
        return self._parse_klines(payload, symbol)

    def _parse_klines(self, payload: Any, symbol: str) -> CandleSeries:
        if not isinstance(payload, list):
            raise MalformedResponseError(self.name, "klines payload is not a list")
        if not payload:
            raise EmptyResponseError(self.name, f"no klines for {symbol}")
        return tuple(candle_from_row(self.name, row) for row in payload)
