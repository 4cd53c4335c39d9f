from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from mediaregistry.core.errors import ConfigurationError

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    value: T
    stored_at: float


class TTLCache(Generic[T]):
    """Read-through cache keyed by collection name.

    The cache never recomputes on its own. On a miss or a stale entry the
    caller takes ``generation(key)``, recomputes, and calls ``set`` with that
    generation. Writers call ``invalidate`` before acknowledging a write, which
    bumps the generation so a recompute that started earlier is discarded.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ConfigurationError(f"Cache TTL must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[T | None, bool]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            fresh = (self._clock() - entry.stored_at) < self.ttl_seconds
            return entry.value, fresh

    def generation(self, key: str) -> int:
        with self._lock:
            return self._generations.get(key, 0)

    def set(self, key: str, value: T, generation: int | None = None) -> bool:
        """Store ``value`` unless ``key`` was invalidated since ``generation``."""
        with self._lock:
            if generation is not None and generation != self._generations.get(key, 0):
                return False
            self._entries[key] = _Entry(value=value, stored_at=self._clock())
            return True

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        with self._lock:
            for key in set(self._entries) | set(self._generations):
                self._generations[key] = self._generations.get(key, 0) + 1
            self._entries.clear()
