"""
In-memory TTL cache for language link lookups

Entries expire `ttl` seconds after they were set. Expired entries are
dropped lazily on read and in bulk by `cleanup_expired`, which the
eviction sweeper calls on every pass.
"""

import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple


class SimpleCache:
    """Thread-safe in-memory cache with TTL"""

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.time):
        self.entries: Dict[str, Tuple[float, Any]] = {}
        self.lock = Lock()
        self.default_ttl = default_ttl
        self.clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self.lock:
            entry = self.entries.get(key)
            if entry is not None and self.clock() >= entry[0]:
                del self.entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry[1]

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        expires_at = self.clock() + (ttl or self.default_ttl)
        with self.lock:
            self.entries[key] = (expires_at, value)

    def cleanup_expired(self) -> int:
        """Drop every expired entry, returns how many went"""
        now = self.clock()
        with self.lock:
            stale = [key for key, (expires_at, _) in self.entries.items() if now >= expires_at]
            for key in stale:
                del self.entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self.entries)
