from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Dict


DEFAULT_TTL_SECONDS = 300


class RequestCache:
    """Keyed response cache with a single TTL.

    Expired entries are dropped on read. Values are deep-copied in and out so
    callers never share mutable state with the cache.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] | None = None) -> None:
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock or time.monotonic
        self._entries: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            if float(entry["expires_at"]) <= now:
                self._entries.pop(key, None)
                return None
            return copy.deepcopy(entry["value"])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = {
                "expires_at": self._clock() + self.ttl_seconds,
                "value": copy.deepcopy(value),
            }

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear(self) -> None:
        self.invalidate_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
