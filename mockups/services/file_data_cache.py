"""In-memory read-through cache of Figma file data with TTL.

Shared across requests so concurrent runs on the same file hit the Figma API
once per TTL window. Entries are only ever replaced whole; a stale read is
acceptable.
"""

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class CachedEntry(Generic[T]):
    data: T
    created_at: float


class FileDataCache(Generic[T]):
    """Thread-safe TTL cache keyed by Figma file key."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, CachedEntry[T]] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, key: str) -> T | None:
        """Get cached data for key, or None if not found/expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at >= self._ttl:
                del self._store[key]
                return None
            return entry.data

    def set(self, key: str, data: T) -> None:
        with self._lock:
            self._cleanup_expired()
            self._store[key] = CachedEntry(data=data, created_at=self._clock())

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return cached data, loading and storing it on a miss.

        The loader runs outside the lock; two concurrent misses may both load
        and the later write wins.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        data = await loader()
        self.set(key, data)
        return data

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _cleanup_expired(self) -> None:
        """Remove expired entries (called under lock)."""
        now = self._clock()
        expired = [k for k, v in self._store.items() if now - v.created_at >= self._ttl]
        for k in expired:
            del self._store[k]
