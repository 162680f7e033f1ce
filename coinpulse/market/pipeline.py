"""Market data pipeline facade consumed by the API and poll services.

Nothing here raises to the caller: total failure surfaces as an empty series
or a missing quote, with diagnostics in the logs only.
"""

import asyncio
import logging
from types import TracebackType
from typing import Any, Callable

import httpx

from coinpulse.core.config import Settings
from coinpulse.core.time_utils import now_ms
from coinpulse.core.types import CandleSeries, CoinIdentity, CoinRef, LiveQuote, Quote, RangeRequest
from coinpulse.market.cache import TTLCache
from coinpulse.market.fallback import FallbackOrchestrator, IdentityLookup
from coinpulse.market.http import JsonFetcher
from coinpulse.market.identifiers import resolve
from coinpulse.market.merge import build_live_tick, merge
from coinpulse.market.providers.binance import BinanceClient
from coinpulse.market.providers.coingecko import CoinGeckoClient
from coinpulse.market.providers.coinmarketcap import CoinMarketCapClient

logger = logging.getLogger(__name__)


def live_quote_from(quote: Quote) -> LiveQuote:
    return LiveQuote(
        coin=quote.symbol,
        price=quote.price,
        change24h=quote.percent_change_24h,
        market_cap=quote.market_cap,
        volume24h=quote.volume_24h,
        timestamp=quote.last_updated_ms,
    )


class MarketDataPipeline:
    """Resolve, fetch with fallback, and merge live ticks for one settings instance."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT_S),
            headers={"User-Agent": f"{settings.APP_NAME}/{settings.VERSION}"},
        )
        self.cache = TTLCache(max_entries=settings.CACHE_MAX_ENTRIES)
        fetcher = JsonFetcher(self._client, self.cache)
        self.primary = CoinMarketCapClient(fetcher, settings, clock=clock)
        self.secondary_a = BinanceClient(fetcher, settings, clock=clock)
        self.secondary_b = CoinGeckoClient(fetcher, settings)
        self.orchestrator = FallbackOrchestrator(self.primary, self.secondary_a, self.secondary_b)

    async def get_coin_ohlcv(
        self,
        raw_id: str,
        vs_currency: str = "usd",
        days: Any = 1,
        interval: Any = "hourly",
    ) -> CandleSeries:
        """Return the canonical series for ``raw_id``; empty means no data available."""

        request = RangeRequest.build(days=days, interval=interval, vs_currency=vs_currency)
        return await self._run_chain(raw_id, resolve(raw_id), request)

    async def get_live_quote(self, raw_id: str) -> LiveQuote | None:
        """Return the latest polled quote for ``raw_id`` or ``None``."""

        quote = await self._fetch_quote(raw_id, resolve(raw_id))
        return live_quote_from(quote) if quote is not None else None

    async def get_chart(self, raw_id: str, days: Any = 1, interval: Any = "hourly") -> CandleSeries:
        """Fetch history and the live quote concurrently and merge them.

        The quote request doubles as the fallback chain's identity lookup, so
        one invocation asks the primary for a quote at most once.
        """

        ref = resolve(raw_id)
        request = RangeRequest.build(days=days, interval=interval)
        quote_task = asyncio.ensure_future(self._fetch_quote(raw_id, ref))

        async def identity_from_quote() -> CoinIdentity | None:
            quote = await quote_task
            return quote.identity() if quote is not None and quote.symbol else None

        try:
            historical = await self._run_chain(raw_id, ref, request, identity_from_quote)
            quote = await quote_task
        finally:
            if not quote_task.done():
                quote_task.cancel()

        if quote is None:
            return historical
        previous = historical[-1] if historical else None
        return merge(historical, build_live_tick(live_quote_from(quote), request.interval, previous))

    async def _run_chain(
        self,
        raw_id: str,
        ref: CoinRef,
        request: RangeRequest,
        identity_lookup: IdentityLookup | None = None,
    ) -> CandleSeries:
        try:
            result = await self.orchestrator.run(ref, request, identity_lookup)
        except Exception as exc:  # noqa: BLE001
            logger.error("ohlcv_pipeline_failed", extra={"coin": raw_id, "error": repr(exc)})
            return ()

        logger.info(
            "ohlcv_resolved",
            extra={
                "coin": raw_id,
                "source": result.source,
                "candles": len(result.candles),
                "attempts": [attempt.provider for attempt in result.attempts],
            },
        )
        return result.candles

    async def _fetch_quote(self, raw_id: str, ref: CoinRef) -> Quote | None:
        try:
            return await self.primary.fetch_quote(ref)
        except Exception as exc:  # noqa: BLE001
            logger.error("live_quote_failed", extra={"coin": raw_id, "error": repr(exc)})
            return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "MarketDataPipeline":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
