"""FastAPI service exposing the market data pipeline to the dashboard UI."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request

from coinpulse.core.config import get_settings
from coinpulse.core.logging import configure_logging
from coinpulse.core.types import RangeRequest
from coinpulse.market.merge import to_chart_points
from coinpulse.market.pipeline import MarketDataPipeline

settings = get_settings()
configure_logging(settings.LOG_LEVEL, service="api")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own one pipeline (and its HTTP client and cache) for the process lifetime."""

    logger.info(
        "api_startup",
        extra={"service": "api", "env": settings.ENV, "version": settings.VERSION},
    )
    async with MarketDataPipeline(settings) as pipeline:
        app.state.pipeline = pipeline
        yield
    logger.info("api_shutdown", extra={"service": "api"})


app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)


def get_pipeline(request: Request) -> MarketDataPipeline:
    return request.app.state.pipeline


@app.get("/health")
def health() -> dict[str, str]:
    """Return process liveness status."""

    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, str]:
    """Return application metadata from shared settings."""

    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "env": settings.ENV,
    }


@app.get("/coins/{coin_id}/ohlc")
async def coin_ohlc(
    coin_id: str,
    vs_currency: str = "usd",
    days: str = "1",
    interval: str = "hourly",
    pipeline: MarketDataPipeline = Depends(get_pipeline),
) -> list[list[int | float]]:
    """Return ``[timestamp_ms, open, high, low, close]`` rows; empty when no source has data."""

    request = RangeRequest.build(days=days, interval=interval, vs_currency=vs_currency)
    series = await pipeline.get_coin_ohlcv(
        coin_id, vs_currency=request.vs_currency, days=request.days, interval=request.interval
    )
    return [list(candle) for candle in series]


@app.get("/coins/{coin_id}/quote")
async def coin_quote(
    coin_id: str,
    pipeline: MarketDataPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    quote = await pipeline.get_live_quote(coin_id)
    if quote is None:
        raise HTTPException(status_code=503, detail="quote unavailable")
    return quote.to_payload()


@app.get("/coins/{coin_id}/chart")
async def coin_chart(
    coin_id: str,
    days: str = "1",
    interval: str = "hourly",
    pipeline: MarketDataPipeline = Depends(get_pipeline),
) -> list[dict[str, Any]]:
    """Return history merged with the live tick, as seconds-based chart points."""

    request = RangeRequest.build(days=days, interval=interval)
    series = await pipeline.get_chart(coin_id, days=request.days, interval=request.interval)
    return to_chart_points(series)
