"""Time helpers; every timestamp inside the pipeline is epoch milliseconds."""

import time
from datetime import datetime, timezone
from typing import Literal

# 2000-01-01T00:00:00Z in milliseconds; anything larger is already milliseconds.
MS_EPOCH_THRESHOLD = 946_684_800_000

DAY_MS = 86_400_000
HOUR_MS = 3_600_000


def now_ms() -> int:
    """Return current wall-clock time in epoch milliseconds."""

    return time.time_ns() // 1_000_000


def detect_unit(timestamp: int | float) -> Literal["ms", "s"]:
    """Classify a numeric epoch timestamp as milliseconds or seconds."""

    return "ms" if timestamp > MS_EPOCH_THRESHOLD else "s"


def to_ms(timestamp: int | float) -> int:
    """Return the canonical millisecond form of a seconds or milliseconds timestamp."""

    if detect_unit(timestamp) == "ms":
        return int(timestamp)
    return int(round(timestamp * 1000))


def from_ms(timestamp_ms: int) -> float:
    """Return epoch seconds, keeping the sub-second part."""

    return timestamp_ms / 1000


def whole_seconds(timestamp_ms: int) -> int:
    """Floor to whole epoch seconds, for APIs and charts that only take integers."""

    return int(timestamp_ms) // 1000


def iso_to_ms(value: str) -> int:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into epoch milliseconds."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(round(parsed.timestamp() * 1000))
