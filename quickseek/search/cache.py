"""
Query Cache - Per-source memo of query -> results.

Bounded by entry count (oldest inserted evicted first), by age, or both.
Safe to share between the event loop and worker threads.
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Hashable, Optional

from quickseek.search.result import SearchResult


class QueryCache:
    """Thread-safe result cache keyed by query."""

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[tuple[SearchResult, ...], float]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[list[SearchResult]]:
        """Return cached results for key, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            results, inserted_at = entry
            if self.ttl is not None and self._clock() - inserted_at > self.ttl:
                del self._entries[key]
                return None
            return list(results)

    def put(self, key: Hashable, results: list[SearchResult]) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (tuple(results), self._clock())
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
