"""Secondary provider B: CoinGecko public OHLC keyed by long-form coin ids like ``ethereum``."""

import re
from typing import Any

from coinpulse.core.config import Settings
from coinpulse.core.types import CandleSeries, CoinIdentity, CoinRef, RangeRequest
from coinpulse.market.cache import cache_key
from coinpulse.market.errors import MalformedResponseError, NoMappingError
from coinpulse.market.http import JsonFetcher
from coinpulse.market.providers.base import ProviderClient, candle_from_row
from coinpulse.market.ranges import coingecko_days_bucket

SYMBOL_TO_COINGECKO_ID: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BNB": "binancecoin",
    "SOL": "solana",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOGE": "dogecoin",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "LINK": "chainlink",
    "LTC": "litecoin",
    "AVAX": "avalanche-2",
    "UNI": "uniswap",
    "ATOM": "cosmos",
    "ETC": "ethereum-classic",
    "XLM": "stellar",
    "ALGO": "algorand",
    "FIL": "filecoin",
    "TRX": "tron",
    "VET": "vechain",
}
_TOKEN_ALIASES = {"eth": "ethereum", "btc": "bitcoin"}
_WHITESPACE = re.compile(r"\s+")


def coingecko_id(ref: CoinRef, identity: CoinIdentity | None) -> str | None:
    """Pick a CoinGecko id: symbol table, then identifier token, then display name."""

    symbol = identity.symbol if identity is not None else ref.symbol
    if symbol and symbol.upper() in SYMBOL_TO_COINGECKO_ID:
        return SYMBOL_TO_COINGECKO_ID[symbol.upper()]

    token = ref.slug_token()
    if token:
        return _TOKEN_ALIASES.get(token, token)

    name = identity.name if identity is not None else None
    if name and name.strip():
        return _WHITESPACE.sub("-", name.strip().lower())

    return None


class CoinGeckoClient(ProviderClient):
    name = "coingecko"

    def __init__(self, fetcher: JsonFetcher, settings: Settings) -> None:
        super().__init__(fetcher)
        self._base_url = settings.COINGECKO_BASE_URL
        self._ttl_s = settings.COINGECKO_CACHE_TTL_S

    async def _fetch_candles(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None,
    ) -> CandleSeries:
        coin_id = coingecko_id(ref, identity)
        if coin_id is None:
            raise NoMappingError(self.name, f"no coin id for {ref.raw_id!r}")

        url = f"{self._base_url}/coins/{coin_id}/ohlc"
        params = {
            "vs_currency": request.vs_currency.lower(),
            "days": str(coingecko_days_bucket(request.days)),
        }
        payload = await self._fetcher.get_json(
            self.name,
            url,
            params=params,
            key=cache_key(url, params),
            ttl_s=self._ttl_s,
        )
        return self._parse_ohlc(payload)

    def _parse_ohlc(self, payload: Any) -> CandleSeries:
        if not isinstance(payload, list):
            raise MalformedResponseError(self.name, "ohlc payload is not a list")
        return tuple(candle_from_row(self.name, row) for row in payload)
