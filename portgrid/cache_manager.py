"""In-memory TTL cache for inventories, and the aggregator wrapper that uses it."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .aggregator import Aggregator
from .models import DeviceWithPorts, Inventory, copy_inventory

DEFAULT_TTL_SECONDS = 45.0


@dataclass(frozen=True)
class CacheEntry:
    data: Tuple[DeviceWithPorts, ...]
    fetched_at: float


class InventoryCache:
    """Key-scoped inventory cache with a fixed time-to-live.

    Entries are only ever replaced wholesale by a successful fetch. A failed
    refresh leaves the previous (stale) entry in place and nothing is
    remembered about the failure, so the next call tries upstream again.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_seconds: How long an entry counts as fresh.
            clock: Monotonic time source in seconds; tests inject a fake one.
        """
        self.ttl_seconds = float(ttl_seconds)
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        self.logger.info(f"🔵 Inventory cache ready (ttl={self.ttl_seconds:g}s)")

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at < self.ttl_seconds

    def get(self, cache_key: str) -> Optional[CacheEntry]:
        """Return the entry for cache_key whether fresh or stale, or None."""
        with self._lock:
            return self._entries.get(cache_key)

    def get_fresh(self, cache_key: str) -> Optional[Inventory]:
        """Return a copy of the cached inventory if it is still within the TTL."""
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                self.logger.info(f"📭 Cache miss: {cache_key} (no entry)")
                return None
            if not self.is_fresh(entry):
                self.logger.info(f"⌛ Cache miss: {cache_key} (expired)")
                return None
            self.logger.debug(f"✅ Cache hit: {cache_key}")
            return copy_inventory(entry.data)

    def set(self, cache_key: str, data: Inventory) -> None:
        with self._lock:
            self._entries[cache_key] = CacheEntry(data=tuple(copy_inventory(data)), fetched_at=self.clock())
        self.logger.info(f"💾 Cached: {cache_key} ({len(data)} devices)")

    def invalidate(self, cache_key: str) -> bool:
        """
        Mark an entry as expired so the next call refreshes it.

        The data itself is kept; if the refresh fails, the stale entry stays
        available through get().

        Returns:
            True if an entry existed, False otherwise.
        """
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                self.logger.debug(f"Cache invalidate skipped (no entry): {cache_key}")
                return False
            self._entries[cache_key] = CacheEntry(
                data=entry.data,
                fetched_at=self.clock() - self.ttl_seconds,
            )
        self.logger.info(f"🗑️ Cache invalidated: {cache_key}")
        return True

    def entries(self) -> List[dict]:
        """List all cache entries with metadata, most recent first."""
        now = self.clock()
        with self._lock:
            items = list(self._entries.items())
        out = [
            {
                "key": key,
                "devices": len(entry.data),
                "age_seconds": round(now - entry.fetched_at, 1),
                "fresh": now - entry.fetched_at < self.ttl_seconds,
            }
            for key, entry in items
        ]
        return sorted(out, key=lambda x: x["age_seconds"])


class CachedAggregator(Aggregator):
    """Wraps an Aggregator so repeated calls within the TTL reuse the last good result.

    Read-if-fresh and fetch-and-replace happen under the cache lock, so
    concurrent callers hitting a miss wait for a single upstream fetch.
    """

    def __init__(self, inner: Aggregator, cache: InventoryCache, cache_key: Optional[str] = None):
        self.inner = inner
        self.cache = cache
        self.cache_key = cache_key or inner.source_name
        self.source_name = inner.source_name
        self.logger = logging.getLogger(__name__)

    def fetch_inventory(self) -> Inventory:
        with self.cache.lock:
            cached = self.cache.get_fresh(self.cache_key)
            if cached is not None:
                return cached

            self.logger.info("Refreshing inventory from %s", self.source_name)
            # Errors propagate and leave any previous entry untouched.
            data = self.inner.fetch_inventory()
            self.cache.set(self.cache_key, data)
            return copy_inventory(data)

