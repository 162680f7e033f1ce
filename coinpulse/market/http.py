"""Cached JSON GET helper shared by provider clients; classifies HTTP failures."""

import logging
from typing import Any, Mapping

import httpx

from coinpulse.market.cache import TTLCache
from coinpulse.market.errors import (
    HttpStatusError,
    MalformedResponseError,
    NotEntitledError,
    RateLimitedError,
    UnreachableError,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "error"

    if isinstance(body, dict):
        status = body.get("status")
        if isinstance(status, dict) and status.get("error_message"):
            return str(status["error_message"])
        for key in ("msg", "error", "message"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or "error"


class JsonFetcher:
    """Read-through cached GET returning decoded JSON or raising a ``ProviderError``."""

    def __init__(self, client: httpx.AsyncClient, cache: TTLCache) -> None:
        self._client = client
        self._cache = cache

    async def get_json(
        self,
        provider: str,
        url: str,
        *,
        params: Mapping[str, Any],
        key: str,
        ttl_s: float,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug("provider_cache_hit", extra={"provider": provider, "cache_key": key})
            return cached

        try:
            response = await self._client.get(url, params=dict(params), headers=headers)
        except httpx.RequestError as exc:
            raise UnreachableError(provider, str(exc) or exc.__class__.__name__) from exc

        if response.status_code == 403:
            message = _error_message(response)
            # OHLCV is outside some plans, so a 403 there is routine.
            log = logger.warning if "ohlcv" in url else logger.error
            log(
                "provider_forbidden",
                extra={"provider": provider, "endpoint": url, "error": message},
            )
            raise NotEntitledError(provider, message, 403)

        if response.status_code == 429:
            logger.warning("provider_rate_limited", extra={"provider": provider, "endpoint": url})
            raise RateLimitedError(provider, _error_message(response), 429)

        if not response.is_success:
            raise HttpStatusError(provider, _error_message(response), response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(provider, "response body is not JSON", response.status_code) from exc

        self._cache.put(key, payload, ttl_s)
        return payload
