"""
In-process TTL Cache
====================

Tiny thread-safe cache for classifier answers.

- Not shared across worker processes
- Evicts expired entries lazily and caps size
- Entries are immutable once written; concurrent writers of the same key
  simply overwrite each other (last write wins)
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple


class TTLCache:
    """Key/value cache where every entry expires ``ttl_seconds`` after insert."""

    def __init__(
        self,
        ttl_seconds: float = 3600,
        maxsize: int = 1024,
        clock: Callable[[], float] = time.monotonic
    ):
        self._data: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._maxsize = maxsize
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= now:
                self._data.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        expires_at = self._clock() + max(0.0, self._ttl)
        with self._lock:
            if key not in self._data and len(self._data) >= self._maxsize:
                self._evict(self._clock())
            self._data[key] = (expires_at, value)

    def _evict(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._data.items() if expires_at <= now]
        for k in expired:
            del self._data[k]
        if len(self._data) >= self._maxsize:
            # Oldest insert goes first
            self._data.pop(next(iter(self._data)))

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
