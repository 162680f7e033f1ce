"""Per-provider range policy: day clamping, interval vocabularies and request windows."""

from coinpulse.core.time_utils import DAY_MS
from coinpulse.core.types import Interval

PRIMARY_MAX_DAYS = 30
PRIMARY_INTERVALS: dict[str, str] = {"hourly": "hourly", "daily": "daily"}
BINANCE_INTERVALS: dict[str, str] = {"hourly": "1h", "daily": "1d"}
BINANCE_MIN_LIMIT = 100
BINANCE_MAX_LIMIT = 1000
COINGECKO_DAY_BUCKETS = (1, 7, 14, 30, 90, 180, 365)


def clamp_days(days: int, maximum: int | None = None) -> int:
    """Return ``days`` bounded below by one and above by ``maximum`` when given."""

    value = max(1, int(days))
    if maximum is not None:
        value = min(value, maximum)
    return value


def primary_interval(interval: Interval | str) -> str:
    return PRIMARY_INTERVALS.get(interval, "daily")


def primary_count(days: int) -> int:
    """Approximate number of buckets requested from the primary provider."""

    clamped = clamp_days(days, PRIMARY_MAX_DAYS)
    return 24 if clamped <= 1 else clamped


def binance_interval(interval: Interval | str) -> str:
    return BINANCE_INTERVALS.get(interval, "1h")


def binance_limit(days: int, interval: Interval | str) -> int:
    per_day = 24 if interval == "hourly" else 1
    return min(max(clamp_days(days) * per_day, BINANCE_MIN_LIMIT), BINANCE_MAX_LIMIT)


def trailing_window_ms(days: int, end_ms: int) -> tuple[int, int]:
    """Return ``(start_ms, end_ms)`` covering ``days`` whole days ending at ``end_ms``."""

    return end_ms - clamp_days(days) * DAY_MS, end_ms


def coingecko_days_bucket(days: int) -> int:
    """Snap ``days`` to the smallest supported OHLC bucket that covers it."""

    wanted = clamp_days(days)
    for bucket in COINGECKO_DAY_BUCKETS:
        if bucket >= wanted:
            return bucket
    return COINGECKO_DAY_BUCKETS[-1]
