"""In-process result cache for search responses."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable

_MISSING = object()


class LRUCacheTTL:
    """Thread-safe LRU map whose entries also expire ``ttl_s`` seconds after being set.

    Keys are expected to carry the snapshot generation, so a reload never serves
    results computed against older data; the TTL only bounds memory for idle keys.
    """

    def __init__(self, maxsize: int = 256, ttl_s: float = 120.0):
        self._maxsize = max(1, int(maxsize))
        self._ttl_s = float(ttl_s)
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _lookup(self, key: Hashable, now: float) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        expires_at, value = entry
        if now >= expires_at:
            del self._entries[key]
            return _MISSING
        self._entries.move_to_end(key)
        return value

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._lookup(key, time.monotonic())
            if value is _MISSING:
                self.misses += 1
                return default
            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic() + self._ttl_s, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._maxsize:
                self._entries.popitem(last=False)

    def get_or_set(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value, computing and storing it on a miss.

        ``compute`` runs outside the lock; concurrent misses may both compute.
        """
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        now = time.monotonic()
        with self._lock:
            stale = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def __len__(self) -> int:
        self.purge_expired()
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return self._lookup(key, time.monotonic()) is not _MISSING
