"""Shared value types passed between the resolver, provider clients, orchestrator and merge engine."""

from dataclasses import dataclass, field
from typing import Any, Literal, NamedTuple, TypeAlias, Union

Interval = Literal["hourly", "daily"]
FailureKind = Literal[
    "not_entitled",
    "rate_limited",
    "http_error",
    "unreachable",
    "malformed_response",
    "no_mapping",
    "empty",
    "unexpected",
]


class Candle(NamedTuple):
    """One OHLC bucket; ``timestamp_ms`` is always epoch milliseconds."""

    timestamp_ms: int
    open: float
    high: float
    low: float
    close: float


CandleSeries: TypeAlias = tuple[Candle, ...]
LiveTick: TypeAlias = Candle


@dataclass(frozen=True, slots=True)
class CoinRef:
    """Resolved forms of a dashboard coin identifier such as ``bitcoin-1``."""

    raw_id: str
    numeric_id: str | None
    symbol: str | None

    def primary_params(self) -> dict[str, str]:
        """Return the ``id`` or ``symbol`` query parameter for the primary provider."""

        if self.numeric_id:
            return {"id": self.numeric_id}
        return {"symbol": self.symbol or self.raw_id.upper()}

    def slug_token(self) -> str:
        """Return the lower-cased leading token of the raw identifier."""

        return self.raw_id.strip().split("-")[0].lower()


@dataclass(frozen=True, slots=True)
class RangeRequest:
    """Requested history window before per-provider clamping."""

    days: int = 1
    interval: Interval = "hourly"
    vs_currency: str = "usd"

    @classmethod
    def build(cls, days: Any = 1, interval: Any = "hourly", vs_currency: Any = "usd") -> "RangeRequest":
        """Coerce loosely-typed caller input; bad day counts fall back to one day."""

        try:
            days_value = int(days)
        except (TypeError, ValueError):
            days_value = 1
        interval_value: Interval = "daily" if str(interval).lower() == "daily" else "hourly"
        currency = str(vs_currency or "usd").strip().lower() or "usd"
        return cls(days=max(1, days_value), interval=interval_value, vs_currency=currency)


@dataclass(frozen=True, slots=True)
class CoinIdentity:
    """Canonical market ticker and display name for one pipeline invocation."""

    symbol: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class Quote:
    """Latest USD quote reported by the primary provider."""

    symbol: str
    name: str
    price: float
    percent_change_24h: float
    market_cap: float
    volume_24h: float
    last_updated_ms: int

    def identity(self) -> CoinIdentity:
        return CoinIdentity(symbol=self.symbol, name=self.name or None)


@dataclass(frozen=True, slots=True)
class LiveQuote:
    """Polled latest price in the shape consumed by the live chart."""

    coin: str
    price: float
    change24h: float
    market_cap: float
    volume24h: float
    timestamp: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "usd": self.price,
            "coin": self.coin,
            "price": self.price,
            "change24h": self.change24h,
            "marketCap": self.market_cap,
            "volume24h": self.volume24h,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class Success:
    """Provider returned a (possibly empty) canonical series."""

    candles: CandleSeries = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Unavailable:
    """Provider cannot serve this request; retrying it is pointless."""

    reason: str
    kind: FailureKind = "unexpected"


@dataclass(frozen=True, slots=True)
class TransientError:
    """Provider failed in a way that might succeed later."""

    reason: str
    kind: FailureKind = "http_error"


ProviderOutcome: TypeAlias = Union[Success, Unavailable, TransientError]
