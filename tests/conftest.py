"""Shared fixtures: offline settings, a fixed clock and a scripted HTTP transport."""

import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest

os.environ.setdefault("COINMARKETCAP_API_KEY", "test-key")

from coinpulse.core.config import Settings  # noqa: E402
from coinpulse.market.pipeline import MarketDataPipeline  # noqa: E402

# 2024-01-01T00:00:00Z
NOW_MS = 1_704_067_200_000

CMC = "https://cmc.test"
BINANCE = "https://binance.test"
COINGECKO = "https://coingecko.test/api/v3"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        COINMARKETCAP_API_KEY="test-key",
        COINMARKETCAP_BASE_URL=CMC,
        BINANCE_BASE_URL=BINANCE,
        COINGECKO_BASE_URL=COINGECKO,
    )


class ScriptedTransport:
    """Route requests by URL path to canned handlers and record every call."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[httpx.Request] = []

    def on(self, path: str, status: int = 200, json: Any = None) -> None:
        self.routes[path] = lambda request: httpx.Response(status, json=json)

    def on_error(self, path: str) -> None:
        def raise_connect(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[path] = raise_connect

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.calls]


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def http_client(transport: ScriptedTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(transport))


@pytest.fixture
def pipeline(settings: Settings, http_client: httpx.AsyncClient) -> MarketDataPipeline:
    return MarketDataPipeline(settings, http_client=http_client, clock=lambda: NOW_MS)


def cmc_ohlcv_payload(count: int, start_ms: int = NOW_MS - 24 * 3_600_000) -> dict[str, Any]:
    from datetime import datetime, timezone

    quotes = []
    for index in range(count):
        opened = datetime.fromtimestamp((start_ms + index * 3_600_000) / 1000, tz=timezone.utc)
        quotes.append(
            {
                "time_open": opened.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
                "quote": {
                    "USD": {
                        "open": 100.0 + index,
                        "high": 101.0 + index,
                        "low": 99.0 + index,
                        "close": 100.5 + index,
                        "volume": 10.0,
                    }
                },
            }
        )
    return {"data": {"id": 1, "name": "Bitcoin", "symbol": "BTC", "quotes": quotes}}


def cmc_quote_payload(coin_id: int, symbol: str, name: str, price: float = 2000.0) -> dict[str, Any]:
    return {
        "data": {
            str(coin_id): {
                "id": coin_id,
                "name": name,
                "symbol": symbol,
                "quote": {
                    "USD": {
                        "price": price,
                        "percent_change_24h": 1.5,
                        "market_cap": 240_000_000_000.0,
                        "volume_24h": 12_000_000_000.0,
                        "last_updated": "2024-01-01T00:30:00.000Z",
                    }
                },
            }
        }
    }


def binance_klines_payload(count: int, start_ms: int = NOW_MS - 50 * 3_600_000) -> list[list[Any]]:
    rows = []
    for index in range(count):
        open_time = start_ms + index * 3_600_000
        rows.append(
            [
                open_time,
                f"{2000 + index}.10",
                f"{2001 + index}.20",
                f"{1999 + index}.30",
                f"{2000 + index}.40",
                "123.4",
                open_time + 3_599_999,
                "0",
                10,
                "0",
                "0",
                "0",
            ]
        )
    return rows
