"""Common provider-client contract: one attempt, canonical candles or a classified outcome."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Sequence

from coinpulse.core.time_utils import to_ms
from coinpulse.core.types import (
    Candle,
    CandleSeries,
    CoinIdentity,
    CoinRef,
    ProviderOutcome,
    RangeRequest,
    Success,
    TransientError,
    Unavailable,
)
from coinpulse.market.errors import MalformedResponseError, ProviderError
from coinpulse.market.http import JsonFetcher

logger = logging.getLogger(__name__)


def as_price(value: Any) -> float:
    """Parse a numeric or numeric-string price; raises ``ValueError`` on junk."""

    if isinstance(value, bool):
        raise ValueError("boolean is not a price")
    price = float(value)
    if not math.isfinite(price):
        raise ValueError("price is not finite")
    return price


def candle_from_row(provider: str, row: Sequence[Any]) -> Candle:
    """Build a canonical candle from ``[ts, open, high, low, close, ...]``."""

    try:
        timestamp = row[0]
        if isinstance(timestamp, bool) or float(timestamp) < 0:
            raise ValueError("negative timestamp")
        return Candle(
            timestamp_ms=to_ms(float(timestamp)),
            open=as_price(row[1]),
            high=as_price(row[2]),
            low=as_price(row[3]),
            close=as_price(row[4]),
        )
    except (IndexError, KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(provider, f"bad candle row: {row!r}") from exc


class ProviderClient(ABC):
    """One external OHLC source. ``fetch_ohlcv`` never raises provider errors."""

    name: str = "provider"

    def __init__(self, fetcher: JsonFetcher) -> None:
        self._fetcher = fetcher

    @abstractmethod
    async def _fetch_candles(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None,
    ) -> CandleSeries:
        """Return canonical candles or raise a ``ProviderError``."""

    def _classify(self, error: ProviderError) -> ProviderOutcome:
        if error.transient:
            return TransientError(reason=str(error), kind=error.kind)
        return Unavailable(reason=str(error), kind=error.kind)

    async def fetch_ohlcv(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None = None,
    ) -> ProviderOutcome:
        try:
            candles = await self._fetch_candles(ref, request, identity)
        except ProviderError as exc:
            logger.warning(
                "provider_ohlcv_failed",
                extra={
                    "provider": self.name,
                    "coin": ref.raw_id,
                    "kind": exc.kind,
                    "error": str(exc),
                },
            )
            return self._classify(exc)

        logger.info(
            "provider_ohlcv_fetched",
            extra={"provider": self.name, "coin": ref.raw_id, "candles": len(candles)},
        )
        return Success(candles=candles)
