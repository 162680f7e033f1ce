"""Short-TTL read-through cache for provider payloads, sized to stay inside rate limits."""

import time
from collections import OrderedDict
from typing import Any, Callable, Mapping

_MISSING = object()


def cache_key(endpoint: str, params: Mapping[str, Any]) -> str:
    """Build a stable key from an endpoint and the request parameters that identify it."""

    parts = [f"{key}={params[key]}" for key in sorted(params)]
    return endpoint + "?" + "&".join(parts)


class TTLCache:
    """Bounded in-memory cache whose entries expire ``ttl_s`` seconds after insertion."""

    def __init__(self, max_entries: int = 512, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default

        self._entries.move_to_end(key)
        return value

    def put(self, key: str, value: Any, ttl_s: float) -> None:
        if ttl_s <= 0:
            return
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (self._clock() + ttl_s, value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
