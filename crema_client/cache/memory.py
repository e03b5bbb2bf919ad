"""In-memory cache with TTL and remote-timestamp invalidation."""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger


def metrics_key(period: str) -> str:
    return f"metrics_{period}"


CREMA_KEY = "crema_data"


@dataclass
class CacheEntry:
    data: Any
    created_at: float


class MemoryCache:
    """Keyed entries stamped with their creation time."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def is_fresh(self, key: str) -> bool:
        """Entry exists and is younger than the TTL."""
        entry = self._entries.get(key)
        return entry is not None and self._clock() - entry.created_at < self.ttl

    def get(self, key: str) -> Any | None:
        """Fresh value or None."""
        if self.is_fresh(key):
            logger.debug("Cache hit: {}", key)
            return self._entries[key].data
        return None

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, created_at=self._clock())
        logger.debug("Cache saved: {}", key)

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)

    def is_stale_against(self, key: str, remote_modified: float | None) -> bool:
        """Remote copy was modified at or after the second the entry was created.

        HTTP dates have one-second precision, so a write in the same second as
        the entry counts as newer. The cost is at most one extra refetch.
        """
        entry = self._entries.get(key)
        if entry is None or remote_modified is None:
            return False
        return remote_modified >= math.floor(entry.created_at)

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Cache cleared")
