"""Short-lived memoization table for provider lookups."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from typing import Any

MISSING = object()


class TTLCache:
    """Per-key expiring cache; entries past their TTL read as misses.

    Reads and inserts take a lock so the table can be shared by concurrent
    evaluation tasks and worker threads alike.
    """

    def __init__(self, *, time_fn: Callable[[], float] | None = None) -> None:
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._time = time_fn or time.monotonic

    def get(self, key: Hashable) -> Any:
        """Return the cached value or ``MISSING``."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISSING
            expires_at, value = entry
            if expires_at <= self._time():
                del self._entries[key]
                return MISSING
            return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = (self._time() + ttl_seconds, value)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._time()
            stale = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
