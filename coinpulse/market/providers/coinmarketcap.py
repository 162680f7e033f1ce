"""Primary provider: CoinMarketCap historical OHLCV and latest quotes (API-key authenticated)."""

import logging
from typing import Any, Callable

from coinpulse.core.config import Settings
from coinpulse.core.time_utils import iso_to_ms, now_ms, whole_seconds
from coinpulse.core.types import Candle, CandleSeries, CoinIdentity, CoinRef, Quote, RangeRequest
from coinpulse.market.cache import cache_key
from coinpulse.market.errors import MalformedResponseError, ProviderError
from coinpulse.market.http import JsonFetcher
from coinpulse.market.providers.base import ProviderClient, as_price
from coinpulse.market.ranges import PRIMARY_MAX_DAYS, clamp_days, primary_count, primary_interval

logger = logging.getLogger(__name__)

OHLCV_PATH = "/v2/cryptocurrency/ohlcv/historical"
QUOTES_PATH = "/v1/cryptocurrency/quotes/latest"
API_KEY_HEADER = "X-CMC_PRO_API_KEY"


def _first_entry(data: Any) -> Any:
    # Keyed by id or symbol; symbol lookups wrap each entry in a list.
    if isinstance(data, dict) and data:
        data = next(iter(data.values()))
    if isinstance(data, list):
        data = data[0] if data else None
    return data


class CoinMarketCapClient(ProviderClient):
    name = "coinmarketcap"

    def __init__(
        self,
        fetcher: JsonFetcher,
        settings: Settings,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        super().__init__(fetcher)
        self._base_url = settings.COINMARKETCAP_BASE_URL
        self._headers = {
            API_KEY_HEADER: settings.COINMARKETCAP_API_KEY,
            "Accept": "application/json",
        }
        self._ohlcv_ttl_s = settings.CMC_OHLCV_CACHE_TTL_S
        self._quote_ttl_s = settings.CMC_QUOTE_CACHE_TTL_S
        self._clock = clock

    async def _fetch_candles(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None,
    ) -> CandleSeries:
        days = clamp_days(request.days, PRIMARY_MAX_DAYS)
        time_end = whole_seconds(self._clock())
        time_start = time_end - days * 86_400
        identifier = ref.primary_params()
        interval = primary_interval(request.interval)
        convert = request.vs_currency.upper()
        url = self._base_url + OHLCV_PATH
        params = {
            **identifier,
            "time_start": str(time_start),
            "time_end": str(time_end),
            "interval": interval,
            "count": str(primary_count(days)),
            "convert": convert,
        }
        key = cache_key(url, {**identifier, "days": days, "interval": interval, "convert": convert})

        payload = await self._fetcher.get_json(
            self.name,
            url,
            params=params,
            key=key,
            ttl_s=self._ohlcv_ttl_s,
            headers=self._headers,
        )
        return self._parse_ohlcv(payload, convert)

    def _parse_ohlcv(self, payload: Any, convert: str) -> CandleSeries:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not (isinstance(data, dict) and "quotes" in data):
            data = _first_entry(data)
        if not isinstance(data, dict) or not isinstance(data.get("quotes"), list):
            raise MalformedResponseError(self.name, "ohlcv payload has no quotes list")

        candles: list[Candle] = []
        for item in data["quotes"]:
            try:
                quote = item["quote"][convert]
                candles.append(
                    Candle(
                        timestamp_ms=iso_to_ms(item["time_open"]),
                        open=as_price(quote["open"]),
                        high=as_price(quote["high"]),
                        low=as_price(quote["low"]),
                        close=as_price(quote["close"]),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise MalformedResponseError(self.name, "bad ohlcv quote entry") from exc
        return tuple(candles)

    async def fetch_quote(self, ref: CoinRef) -> Quote | None:
        """Return the latest USD quote, or ``None`` when the provider cannot supply it."""

        url = self._base_url + QUOTES_PATH
        params = {**ref.primary_params(), "convert": "USD"}
        try:
            payload = await self._fetcher.get_json(
                self.name,
                url,
                params=params,
                key=cache_key(url, params),
                ttl_s=self._quote_ttl_s,
                headers=self._headers,
            )
            return self._parse_quote(payload)
        except ProviderError as exc:
            logger.warning(
                "primary_quote_failed",
                extra={"provider": self.name, "coin": ref.raw_id, "kind": exc.kind, "error": str(exc)},
            )
            return None

    def _parse_quote(self, payload: Any) -> Quote:
        coin = _first_entry(payload.get("data") if isinstance(payload, dict) else None)
        try:
            usd = coin["quote"]["USD"]
            last_updated = usd.get("last_updated") or coin.get("last_updated")
            return Quote(
                symbol=str(coin["symbol"]).upper(),
                name=str(coin.get("name") or ""),
                price=as_price(usd["price"]),
                percent_change_24h=float(usd.get("percent_change_24h") or 0.0),
                market_cap=float(usd.get("market_cap") or 0.0),
                volume_24h=float(usd.get("volume_24h") or 0.0),
                last_updated_ms=iso_to_ms(last_updated) if last_updated else now_ms(),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedResponseError(self.name, "bad quote payload") from exc

    async def fetch_identity(self, ref: CoinRef) -> CoinIdentity | None:
        """Resolve the canonical market ticker and display name for ``ref``."""

        quote = await self.fetch_quote(ref)
        if quote is None or not quote.symbol:
            return None
        return quote.identity()
