"""Sequential provider fallback expressed as an explicit state machine.

The chain always starts at the primary provider and walks a fixed transition
table, giving each provider exactly one attempt. The caller always receives a
series; total failure is an empty one.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Protocol

from coinpulse.core.types import (
    CandleSeries,
    CoinIdentity,
    CoinRef,
    ProviderOutcome,
    RangeRequest,
    Success,
    TransientError,
    Unavailable,
)

logger = logging.getLogger(__name__)

IdentityLookup = Callable[[], Awaitable[CoinIdentity | None]]

ChainState = Literal["primary", "secondary_a", "secondary_b", "exhausted"]

PRIMARY: ChainState = "primary"
SECONDARY_A: ChainState = "secondary_a"
SECONDARY_B: ChainState = "secondary_b"
EXHAUSTED: ChainState = "exhausted"

TRANSITIONS: dict[ChainState, ChainState] = {
    PRIMARY: SECONDARY_A,
    SECONDARY_A: SECONDARY_B,
    SECONDARY_B: EXHAUSTED,
}


class OHLCSource(Protocol):
    name: str

    async def fetch_ohlcv(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None = None,
    ) -> ProviderOutcome: ...


class IdentitySource(OHLCSource, Protocol):
    async def fetch_identity(self, ref: CoinRef) -> CoinIdentity | None: ...


@dataclass(frozen=True, slots=True)
class Attempt:
    """Record of one provider attempt within a chain invocation."""

    state: ChainState
    provider: str
    outcome: str
    candles: int = 0
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class FallbackResult:
    candles: CandleSeries
    source: str | None
    attempts: tuple[Attempt, ...]


def accepts(state: ChainState, outcome: ProviderOutcome) -> bool:
    """Primary success ends the chain even when empty; secondaries must return data."""

    if not isinstance(outcome, Success):
        return False
    return state == PRIMARY or bool(outcome.candles)


def _describe(state: ChainState, provider: str, outcome: ProviderOutcome) -> Attempt:
    if isinstance(outcome, Success):
        return Attempt(state=state, provider=provider, outcome="success", candles=len(outcome.candles))
    if isinstance(outcome, TransientError):
        return Attempt(state=state, provider=provider, outcome="transient_error", reason=outcome.reason)
    return Attempt(state=state, provider=provider, outcome="unavailable", reason=outcome.reason)


class FallbackOrchestrator:
    """Drive primary → secondary A → secondary B, never racing providers."""

    def __init__(self, primary: IdentitySource, secondary_a: OHLCSource, secondary_b: OHLCSource) -> None:
        self._primary = primary
        self._clients: dict[ChainState, OHLCSource] = {
            PRIMARY: primary,
            SECONDARY_A: secondary_a,
            SECONDARY_B: secondary_b,
        }

    async def run(
        self,
        ref: CoinRef,
        request: RangeRequest,
        identity_lookup: IdentityLookup | None = None,
    ) -> FallbackResult:
        """Walk the chain once. ``identity_lookup`` replaces the primary's own lookup."""

        state: ChainState = PRIMARY
        identity: CoinIdentity | None = None
        identity_resolved = False
        attempts: list[Attempt] = []

        while state != EXHAUSTED:
            if state != PRIMARY and not identity_resolved:
                identity = await self._resolve_identity(ref, identity_lookup)
                identity_resolved = True

            client = self._clients[state]
            outcome = await self._attempt(client, ref, request, identity)
            attempts.append(_describe(state, client.name, outcome))

            if accepts(state, outcome):
                if state != PRIMARY:
                    logger.info(
                        "ohlcv_fallback_served",
                        extra={"coin": ref.raw_id, "provider": client.name, "candles": len(outcome.candles)},
                    )
                return FallbackResult(candles=outcome.candles, source=client.name, attempts=tuple(attempts))

            state = TRANSITIONS[state]

        logger.warning(
            "ohlcv_sources_exhausted",
            extra={"coin": ref.raw_id, "providers": [attempt.provider for attempt in attempts]},
        )
        return FallbackResult(candles=(), source=None, attempts=tuple(attempts))

    async def _attempt(
        self,
        client: OHLCSource,
        ref: CoinRef,
        request: RangeRequest,
        identity: CoinIdentity | None,
    ) -> ProviderOutcome:
        try:
            return await client.fetch_ohlcv(ref, request, identity)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "provider_unexpected_error",
                extra={"provider": client.name, "coin": ref.raw_id, "error": repr(exc)},
            )
            return Unavailable(reason=repr(exc), kind="unexpected")

    async def _resolve_identity(self, ref: CoinRef, lookup: IdentityLookup | None) -> CoinIdentity | None:
        try:
            identity = await (lookup() if lookup is not None else self._primary.fetch_identity(ref))
        except Exception as exc:  # noqa: BLE001
            logger.warning("identity_lookup_failed", extra={"coin": ref.raw_id, "error": repr(exc)})
            identity = None

        if identity is None:
            logger.info("identity_kept_resolved_symbol", extra={"coin": ref.raw_id, "symbol": ref.symbol})
        return identity
